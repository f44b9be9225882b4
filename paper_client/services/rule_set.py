"""
Generation Rule Set
Client-side builder for question-paper generation requests.
"""
import logging
from typing import Any, List, Optional

from pydantic import BaseModel, Field, ValidationError

from paper_client.config import DEFAULT_DIFFICULTY, DEFAULT_UNIT_DISTRIBUTION, default_rules
from paper_client.errors import RuleValidationError
from paper_client.schemas import (
    DifficultyDistribution,
    GenerationRequest,
    GenerationRules,
    QuestionTypeRule,
    UnitDistribution,
)

logger = logging.getLogger(__name__)


class GenerationRuleSet(BaseModel):
    """
    Ordered question-type quotas plus distribution settings.

    Rule order is meaningful: it is the section order the user asked for.
    Total marks are always derived from the rules and never stored.
    """
    rules: List[QuestionTypeRule] = Field(default_factory=default_rules)
    difficulty_distribution: DifficultyDistribution = Field(
        default_factory=lambda: DEFAULT_DIFFICULTY.model_copy()
    )
    unit_distribution: UnitDistribution = DEFAULT_UNIT_DISTRIBUTION
    include_answers: bool = True
    randomize_options: bool = True

    def total_marks(self) -> int:
        return sum(rule.marks * rule.count for rule in self.rules)

    def add_rule(self, rule: Optional[QuestionTypeRule] = None, **overrides: Any) -> QuestionTypeRule:
        """
        Append a rule, defaulting to one short-answer question worth 2 marks.

        Args:
            rule: A ready-made rule to append; it is re-validated.
            **overrides: Field values for a new rule when `rule` is not given.

        Returns:
            The appended rule.

        Raises:
            RuleValidationError: If the rule or the overrides break a rule invariant.
        """
        fields = rule.model_dump() if rule is not None else overrides
        try:
            rule = QuestionTypeRule.model_validate(fields)
        except ValidationError as e:
            raise RuleValidationError(_describe(e)) from e
        self.rules.append(rule)
        return rule

    def update_rule(self, index: int, field: str, value: Any) -> QuestionTypeRule:
        """
        Replace one field of the rule at `index`.

        The rule is re-validated before it is accepted; an invalid value is
        rejected and the rule set is left untouched.

        Raises:
            IndexError: If there is no rule at `index`.
            RuleValidationError: If `field` is unknown or `value` is invalid.
        """
        current = self.rules[index]
        if field not in QuestionTypeRule.model_fields:
            raise RuleValidationError(f"Unknown rule field '{field}'")

        try:
            updated = QuestionTypeRule.model_validate({**current.model_dump(), field: value})
        except ValidationError as e:
            raise RuleValidationError(_describe(e)) from e

        self.rules[index] = updated
        return updated

    def remove_rule(self, index: int) -> QuestionTypeRule:
        """
        Remove the rule at `index`.

        Raises:
            IndexError: If there is no rule at `index`.
            RuleValidationError: If it is the last remaining rule.
        """
        if len(self.rules) <= 1 and -len(self.rules) <= index < len(self.rules):
            raise RuleValidationError("At least one question type is required")
        return self.rules.pop(index)

    def to_request(self, syllabus_id: Optional[str]) -> GenerationRequest:
        """
        Snapshot the rule set into a generation request.

        Raises:
            RuleValidationError: If no syllabus is selected or the paper would carry no marks.
        """
        if not syllabus_id or not str(syllabus_id).strip():
            raise RuleValidationError("Please select a syllabus")

        total_marks = self.total_marks()
        if total_marks <= 0:
            raise RuleValidationError("Total marks must be greater than zero")

        logger.debug("Building request for syllabus %s: %d rules, %d marks",
                     syllabus_id, len(self.rules), total_marks)
        return GenerationRequest(
            syllabus_id=str(syllabus_id),
            total_marks=total_marks,
            generation_rules=GenerationRules(
                question_types=[rule.model_copy() for rule in self.rules],
                difficulty_distribution=self.difficulty_distribution.model_copy(),
                unit_distribution=self.unit_distribution,
                include_answers=self.include_answers,
                randomize_options=self.randomize_options,
            ),
        )


def _describe(error: ValidationError) -> str:
    """Flatten a pydantic error into one inline message."""
    parts = []
    for detail in error.errors():
        location = ".".join(str(part) for part in detail["loc"])
        parts.append(f"{location}: {detail['msg']}" if location else detail["msg"])
    return "; ".join(parts)
