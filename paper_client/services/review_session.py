"""
Review Session
Per-view controller for one question paper: fetches and composes the paper,
lazily loads the answer key for evaluation mode, and prints.
"""
import asyncio
import logging
from enum import Enum
from pathlib import Path
from typing import List, Optional, Union

from paper_client.errors import FetchError, PaperNotReadyError
from paper_client.schemas import AnswerKey, AnswerKeyEntry, QuestionPaper, Section
from paper_client.services.answer_binder import AnswerIndex, bind
from paper_client.services.composer import compose
from paper_client.services.doc_generator import render_paper_docx

logger = logging.getLogger(__name__)


class SessionState(str, Enum):
    IDLE = "idle"
    LOADING_PAPER = "loading_paper"
    PAPER_LOADED = "paper_loaded"
    PAPER_ERROR = "paper_error"


class KeyState(str, Enum):
    NOT_FETCHED = "not_fetched"
    LOADING = "loading"
    LOADED = "loaded"
    ERROR = "error"


class ReviewSession:
    """
    State machine for reviewing one paper.

    The paper is fetched once and composed once. The answer key is fetched
    at most once, the first time evaluation mode is switched on after the
    paper has loaded. A failed key fetch is logged and the overlay simply
    shows no answers. After close(), late responses are discarded.

    Args:
        client: Backend client exposing `get_paper` and `get_answer_key` coroutines.
        paper_id: Paper to review.
    """

    def __init__(self, client, paper_id: str):
        self._client = client
        self.paper_id = paper_id
        self.paper: Optional[QuestionPaper] = None
        self.answer_key: Optional[AnswerKey] = None
        self.error: Optional[str] = None
        self.error_status: Optional[int] = None
        self.evaluation_mode = False
        self.state = SessionState.IDLE
        self.key_state = KeyState.NOT_FETCHED
        self._sections: List[Section] = []
        self._index: Optional[AnswerIndex] = None
        self._key_task: Optional[asyncio.Task] = None
        self._alive = True

    @property
    def loading_paper(self) -> bool:
        return self.state is SessionState.LOADING_PAPER

    @property
    def loading_key(self) -> bool:
        return self.key_state is KeyState.LOADING

    @property
    def closed(self) -> bool:
        return not self._alive

    @property
    def sections(self) -> List[Section]:
        return self._sections

    async def start(self) -> None:
        """
        Fetch and compose the paper.

        A fetch failure moves the session to PAPER_ERROR for good; the
        caller has to open a new session to retry.

        Raises:
            RuntimeError: If the session was already started or is closed.
        """
        if self.closed:
            raise RuntimeError("Session is closed")
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session already started (state: {self.state.value})")

        self.state = SessionState.LOADING_PAPER
        self.error = None
        logger.debug("Loading paper %s", self.paper_id)

        try:
            paper = await self._client.get_paper(self.paper_id)
        except FetchError as e:
            if self.closed:
                return
            self.state = SessionState.PAPER_ERROR
            self.error = e.message
            self.error_status = e.status_code
            logger.error("Failed to load paper %s: %s", self.paper_id, e.message)
            return
        except Exception as e:
            logger.exception("Unexpected error loading paper %s", self.paper_id)
            if self.closed:
                return
            self.state = SessionState.PAPER_ERROR
            self.error = str(e) or "Failed to fetch question paper"
            return

        if self.closed:
            logger.debug("Discarding paper %s for a closed session", self.paper_id)
            return

        self.paper = paper
        self._sections = compose(paper.questions)
        self.state = SessionState.PAPER_LOADED
        logger.debug("Paper %s composed into %d sections", self.paper_id, len(self._sections))

        if self.evaluation_mode:
            self._request_answer_key()

    def set_evaluation_mode(self, enabled: bool) -> None:
        """
        Show or hide the answer overlay.

        Switching it on for the first time after the paper has loaded
        starts the answer-key fetch in the background; lookups return
        None until it resolves. Must be called from inside a running
        event loop.
        """
        self.evaluation_mode = enabled
        if (
            enabled
            and self.state is SessionState.PAPER_LOADED
            and self.key_state is KeyState.NOT_FETCHED
        ):
            self._request_answer_key()

    def toggle_evaluation_mode(self) -> bool:
        self.set_evaluation_mode(not self.evaluation_mode)
        return self.evaluation_mode

    def _request_answer_key(self) -> None:
        self.key_state = KeyState.LOADING
        self._key_task = asyncio.get_running_loop().create_task(self._fetch_answer_key())

    async def _fetch_answer_key(self) -> None:
        try:
            answer_key = await self._client.get_answer_key(self.paper_id)
        except FetchError as e:
            # The paper stays usable without grading data.
            logger.error("Failed to load answer key for paper %s: %s", self.paper_id, e.message)
            if not self.closed:
                self.key_state = KeyState.ERROR
            return
        except Exception:
            logger.exception("Unexpected error loading answer key for paper %s", self.paper_id)
            if not self.closed:
                self.key_state = KeyState.ERROR
            return

        if self.closed:
            logger.debug("Discarding answer key %s for a closed session", self.paper_id)
            return

        self.answer_key = answer_key
        self._index = bind(self._sections, answer_key)
        self.key_state = KeyState.LOADED

    async def wait_for_answer_key(self) -> None:
        """Wait for a pending answer-key fetch, if any."""
        task = self._key_task
        if task is None or task.cancelled():
            return
        try:
            await task
        except asyncio.CancelledError:
            if not self.closed:
                raise

    def lookup(self, question_id: str) -> Optional[AnswerKeyEntry]:
        """Answer for a question while evaluation mode is on; None otherwise or when unknown."""
        if not self.evaluation_mode or self._index is None:
            return None
        return self._index.lookup(question_id)

    def print_paper(self, output_path: Union[str, Path]) -> Path:
        """
        Render the composed paper, with answers when evaluation mode is on.

        Raises:
            PaperNotReadyError: If the paper is still loading or failed to load.
        """
        if self.loading_paper or self.paper is None:
            raise PaperNotReadyError("Paper is not ready to print")

        lookup = self.lookup if self.evaluation_mode else None
        return render_paper_docx(self.paper, self._sections, output_path, lookup=lookup)

    def dismiss_error(self) -> None:
        self.error = None

    def close(self) -> None:
        """Tear the session down. Pending fetches are cancelled or their results dropped."""
        self._alive = False
        if self._key_task is not None and not self._key_task.done():
            self._key_task.cancel()
