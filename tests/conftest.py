"""
Pytest Configuration & Shared Fixtures
"""
import asyncio
from typing import List, Optional

import pytest

from paper_client.schemas import AnswerKey, AnswerKeyEntry, Question, QuestionPaper


def make_question(question_id: str, question_type: str, marks: int, **extra) -> Question:
    return Question(
        id=question_id,
        unit_id=extra.pop("unit_id", "u1"),
        unit_name=extra.pop("unit_name", "Introduction"),
        question_text=extra.pop("question_text", f"Question {question_id}?"),
        marks=marks,
        type=question_type,
        **extra,
    )


class FakeBackend:
    """In-memory stand-in for the backend client. Gates hold a fetch until released."""

    def __init__(self, paper: Optional[QuestionPaper], answer_key: Optional[AnswerKey]):
        self.paper = paper
        self.answer_key = answer_key
        self.paper_error: Optional[Exception] = None
        self.key_error: Optional[Exception] = None
        self.paper_gate: Optional[asyncio.Event] = None
        self.key_gate: Optional[asyncio.Event] = None
        self.calls: List[tuple] = []

    async def get_paper(self, paper_id: str) -> QuestionPaper:
        self.calls.append(("get_paper", paper_id))
        if self.paper_gate is not None:
            await self.paper_gate.wait()
        if self.paper_error is not None:
            raise self.paper_error
        return self.paper

    async def get_answer_key(self, paper_id: str) -> AnswerKey:
        self.calls.append(("get_answer_key", paper_id))
        if self.key_gate is not None:
            await self.key_gate.wait()
        if self.key_error is not None:
            raise self.key_error
        return self.answer_key

    def count(self, name: str) -> int:
        return sum(1 for call in self.calls if call[0] == name)


@pytest.fixture
def flat_questions() -> List[Question]:
    """3 multiple choice, 2 essays, then a late multiple choice."""
    return [
        make_question("q1", "multiple_choice", 1, options=["Stack", "Queue", "Heap", "Tree"],
                      course_outcome="CO1", blooms_level="K1"),
        make_question("q2", "multiple_choice", 1, options=["O(1)", "O(n)", "O(log n)", "O(n^2)"]),
        make_question("q3", "multiple_choice", 1, options=["TCP", "UDP", "IP", "ARP"]),
        make_question("q4", "essay", 10, question_text="Discuss process scheduling.",
                      course_outcome="CO3", blooms_level="K4"),
        make_question("q5", "essay", 10, question_text="Explain virtual memory."),
        make_question("q6", "multiple_choice", 1, options=["FIFO", "LIFO", "LRU", "MRU"]),
    ]


@pytest.fixture
def sample_paper(flat_questions) -> QuestionPaper:
    return QuestionPaper(
        id="p1",
        syllabus_id="s1",
        course_name="Operating Systems",
        generated_at="2024-03-01T10:00:00Z",
        total_marks=24,
        total_questions=len(flat_questions),
        questions=flat_questions,
    )


@pytest.fixture
def sample_answer_key() -> AnswerKey:
    return AnswerKey(
        paper_id="p1",
        course_name="Operating Systems",
        total_marks=24,
        answers=[
            AnswerKeyEntry(question_id="q1", question_number=1, marks=1,
                           question_text="Question q1?", correct_answer="a",
                           explanation="A stack is LIFO."),
            AnswerKeyEntry(question_id="q2", question_number=2, marks=1,
                           question_text="Question q2?", correct_answer="b"),
            AnswerKeyEntry(question_id="q4", question_number=1, marks=10,
                           question_text="Discuss process scheduling.",
                           correct_answer="Covers FCFS, SJF and round robin."),
        ],
    )


@pytest.fixture
def fake_backend(sample_paper, sample_answer_key) -> FakeBackend:
    return FakeBackend(sample_paper, sample_answer_key)
