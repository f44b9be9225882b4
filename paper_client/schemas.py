"""
Data Schemas for the Question Paper Client
Pydantic models for the backend's payloads and the client's derived structures.
"""
from enum import Enum
from typing import Dict, Generic, List, Optional, TypeVar

from pydantic import BaseModel, Field, field_validator

T = TypeVar("T")


class QuestionKind(str, Enum):
    """Question types a generation rule may request."""
    MULTIPLE_CHOICE = "multiple_choice"
    SHORT_ANSWER = "short_answer"
    DESCRIPTIVE = "descriptive"
    ESSAY = "essay"


class UnitDistribution(str, Enum):
    """How the backend spreads questions across syllabus units."""
    EQUAL = "equal"
    WEIGHTED = "weighted"
    RANDOM = "random"


class QuestionTypeRule(BaseModel):
    """A quota of questions of one type at a fixed mark value."""
    type: QuestionKind = Field(QuestionKind.SHORT_ANSWER, description="Question format type")
    marks: int = Field(2, ge=1, description="Marks per question")
    count: int = Field(1, ge=1, description="Number of questions")

    @property
    def subtotal(self) -> int:
        return self.marks * self.count


class DifficultyDistribution(BaseModel):
    """Difficulty weights, read as percentages. A sum of 100 is expected but not enforced."""
    easy: int = Field(33, ge=0)
    medium: int = Field(34, ge=0)
    hard: int = Field(33, ge=0)


class GenerationRules(BaseModel):
    """The `generation_rules` block of a generation request."""
    question_types: List[QuestionTypeRule]
    difficulty_distribution: DifficultyDistribution = Field(default_factory=DifficultyDistribution)
    unit_distribution: UnitDistribution = UnitDistribution.EQUAL
    include_answers: bool = True
    randomize_options: bool = True


class GenerationRequest(BaseModel):
    """Payload for `POST /question-paper/generate`."""
    syllabus_id: str
    total_marks: int
    generation_rules: GenerationRules


class Unit(BaseModel):
    id: str
    title: str = ""
    topics: List[str] = Field(default_factory=list)
    order: int = 0


class Syllabus(BaseModel):
    id: str
    course_name: str
    content: str = ""
    units: List[Unit] = Field(default_factory=list)
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @field_validator("units", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class Question(BaseModel):
    """A generated question. Identity is `id`; `type` stays a plain string so unknown types survive."""
    id: str = Field(..., description="Stable question identifier")
    unit_id: str = ""
    unit_name: str = ""
    question_text: str = Field(..., description="The question text")
    marks: int = Field(..., description="Marks for this question")
    type: str = Field(..., description="Question format type")
    difficulty: str = "medium"
    options: List[str] = Field(default_factory=list, description="Answer choices, empty when none")
    course_outcome: Optional[str] = Field(None, description="Course outcome tag (CO1, CO2, ...)")
    blooms_level: Optional[str] = Field(None, description="Bloom's taxonomy level (K1, K2, ...)")

    @field_validator("options", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class ConfirmedQuestionType(BaseModel):
    type: str
    marks: int
    count: int
    difficulty: Optional[str] = None


class ConfirmedGenerationRules(BaseModel):
    """The backend's own record of the rules a paper was generated with."""
    question_types: List[ConfirmedQuestionType] = Field(default_factory=list)
    difficulty_distribution: DifficultyDistribution = Field(default_factory=DifficultyDistribution)
    unit_selection: str = "equal"
    include_answer_key: bool = True
    randomize_order: bool = False
    randomize_options: bool = False


class QuestionPaper(BaseModel):
    """A generated question paper as returned by the backend."""
    id: str
    syllabus_id: str
    course_name: str = ""
    generated_at: Optional[str] = None
    total_marks: int = 0
    total_questions: int = 0
    questions: List[Question] = Field(default_factory=list)
    generation_rules: ConfirmedGenerationRules = Field(default_factory=ConfirmedGenerationRules)
    units_coverage: Dict[str, int] = Field(default_factory=dict)

    @field_validator("questions", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class AnswerKeyEntry(BaseModel):
    """Correct answer for one question of a paper."""
    question_id: str
    question_number: int
    marks: int
    question_text: str = ""
    correct_answer: str
    explanation: Optional[str] = None


class AnswerKey(BaseModel):
    paper_id: str
    course_name: str = ""
    total_marks: int = 0
    generated_at: Optional[str] = None
    answers: List[AnswerKeyEntry] = Field(default_factory=list)

    @field_validator("answers", mode="before")
    @classmethod
    def _none_as_empty(cls, value):
        return [] if value is None else value


class Section(BaseModel):
    """A type-homogeneous, contiguous part of a composed paper."""
    type: str
    label: str
    questions: List[Question] = Field(default_factory=list)

    @property
    def subtotal(self) -> int:
        return sum(question.marks for question in self.questions)

    @property
    def uniform_marks(self) -> Optional[int]:
        """Per-question marks when every question carries the same value."""
        marks = {question.marks for question in self.questions}
        return marks.pop() if len(marks) == 1 else None


class Page(BaseModel, Generic[T]):
    """A page of a list endpoint. The backend returns bare arrays; the client wraps them."""
    items: List[T] = Field(default_factory=list)
    total: int = 0
    skip: int = 0
    limit: int = 10
