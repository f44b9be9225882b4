"""
Paper Composer
Regroups a generated paper's flat question list into lettered sections.
"""
from typing import Dict, Iterable, List

from paper_client.schemas import Question, Section


def section_label(position: int) -> str:
    """
    Letter label for a zero-based section position.

    Args:
        position: Section index (0 -> "A", 25 -> "Z", 26 -> "AA").

    Raises:
        ValueError: If position is negative.
    """
    if position < 0:
        raise ValueError("position must not be negative")

    label = ""
    position += 1
    while position > 0:
        position, remainder = divmod(position - 1, 26)
        label = chr(ord("A") + remainder) + label
    return label


def format_question_type(question_type: str) -> str:
    """Display name for a question type ("short_answer" -> "Short Answer")."""
    return " ".join(word.capitalize() for word in question_type.split("_"))


def compose(questions: Iterable[Question]) -> List[Section]:
    """
    Group questions by type into sections.

    Sections appear in the order their type is first seen; questions keep
    their received order inside a section. Unknown types are grouped by
    their literal value.

    Args:
        questions: Flat question list as generated.

    Returns:
        Sections labelled A, B, C... by position. Empty input gives [].
    """
    grouped: Dict[str, List[Question]] = {}
    for question in questions:
        grouped.setdefault(question.type, []).append(question)

    return [
        Section(type=question_type, label=section_label(position), questions=members)
        for position, (question_type, members) in enumerate(grouped.items())
    ]


def describe_section_marks(section: Section) -> str:
    """
    Marks summary for a section heading.

    Uniform sections read "3 × 2 = 6 Marks"; mixed ones "3 questions, 7 Marks".
    """
    count = len(section.questions)
    uniform = section.uniform_marks
    if uniform is not None:
        return f"{count} × {uniform} = {section.subtotal} Marks"
    noun = "question" if count == 1 else "questions"
    return f"{count} {noun}, {section.subtotal} Marks"
