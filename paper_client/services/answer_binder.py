"""
Answer Binder
Indexes an answer key by question id so the evaluator overlay can look answers up per question.
"""
import logging
import warnings
from typing import Dict, Iterable, List, Optional

from paper_client.errors import DataIntegrityWarning
from paper_client.schemas import AnswerKey, AnswerKeyEntry, Section

logger = logging.getLogger(__name__)


class AnswerIndex:
    """Lookup from question id to answer-key entry. Holds no reveal state."""

    def __init__(self, entries: Dict[str, AnswerKeyEntry], duplicates: List[str], unmatched: List[str]):
        self._entries = entries
        self.duplicates = duplicates
        self.unmatched = unmatched

    def lookup(self, question_id: str) -> Optional[AnswerKeyEntry]:
        return self._entries.get(question_id)

    def __contains__(self, question_id: object) -> bool:
        return question_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def bind(sections: Iterable[Section], answer_key: AnswerKey) -> AnswerIndex:
    """
    Build the answer index for a composed paper.

    The first entry wins when the key repeats a question id; the repeat is
    reported as a DataIntegrityWarning and binding carries on.

    Args:
        sections: Composed sections of the paper the key belongs to.
        answer_key: Answer key fetched for that paper.

    Returns:
        AnswerIndex with the duplicate ids and the question ids the key does not cover.
    """
    entries: Dict[str, AnswerKeyEntry] = {}
    duplicates: List[str] = []
    for entry in answer_key.answers:
        if entry.question_id in entries:
            duplicates.append(entry.question_id)
            continue
        entries[entry.question_id] = entry

    if duplicates:
        message = (
            f"Answer key for paper {answer_key.paper_id} repeats question ids "
            f"{', '.join(duplicates)}; keeping the first entry of each"
        )
        logger.warning(message)
        warnings.warn(message, DataIntegrityWarning, stacklevel=2)

    unmatched = [
        question.id
        for section in sections
        for question in section.questions
        if question.id not in entries
    ]
    if unmatched:
        logger.debug("Answer key for paper %s has no entry for %d questions",
                     answer_key.paper_id, len(unmatched))

    return AnswerIndex(entries, duplicates, unmatched)
