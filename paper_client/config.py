"""
Configuration Module for the Question Paper Client
Centralizes environment variables, backend settings, and form defaults.
"""
import os
import tempfile
from pathlib import Path

from dotenv import load_dotenv

from paper_client.schemas import (
    DifficultyDistribution,
    QuestionKind,
    QuestionTypeRule,
    UnitDistribution,
)

# --- Backend Configuration ---
DEFAULT_API_URL = "http://localhost:8000/api"
DEFAULT_TIMEOUT_SECONDS = 30.0
DEFAULT_PAGE_LIMIT = 100

BASE_DIR = Path(__file__).resolve().parents[1]
OUTPUT_DIR = BASE_DIR / "output"

# --- Form Bounds ---
MAX_MARKS_PER_QUESTION = 100
MAX_QUESTIONS_PER_RULE = 50


def get_api_url() -> str:
    """
    Returns the backend base URL without a trailing slash.

    Reads PAPER_API_URL, falling back to the local development backend.
    """
    # Load environment variables fresh (for testing and reload scenarios)
    load_dotenv()
    return os.getenv("PAPER_API_URL", DEFAULT_API_URL).rstrip("/")


def get_timeout() -> float:
    """
    Returns the transport timeout in seconds.

    Raises:
        ValueError: If PAPER_API_TIMEOUT is set but not a positive number.
    """
    load_dotenv()
    raw = os.getenv("PAPER_API_TIMEOUT")
    if not raw:
        return DEFAULT_TIMEOUT_SECONDS

    timeout = float(raw)
    if timeout <= 0:
        raise ValueError("PAPER_API_TIMEOUT must be positive")
    return timeout


def get_output_dir() -> Path:
    """Resolve the directory printable documents are written to."""
    load_dotenv()
    configured = os.getenv("PAPER_OUTPUT_DIR")
    if configured:
        return Path(configured)
    if os.getenv("VERCEL"):
        return Path(tempfile.gettempdir()) / "paper-client-output"
    return OUTPUT_DIR


def default_rules() -> list[QuestionTypeRule]:
    """The rule set a new generation form starts from."""
    return [
        QuestionTypeRule(type=QuestionKind.MULTIPLE_CHOICE, marks=1, count=10),
        QuestionTypeRule(type=QuestionKind.SHORT_ANSWER, marks=2, count=5),
        QuestionTypeRule(type=QuestionKind.DESCRIPTIVE, marks=5, count=4),
        QuestionTypeRule(type=QuestionKind.ESSAY, marks=10, count=2),
    ]


DEFAULT_DIFFICULTY = DifficultyDistribution(easy=33, medium=34, hard=33)
DEFAULT_UNIT_DISTRIBUTION = UnitDistribution.EQUAL
