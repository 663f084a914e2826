"""
Disqualification Rules
======================
A lead is disqualified if ANY answer below matches.

The wizard checks a single proposed answer the moment it is clicked,
and the orchestrator checks the whole answer set at submission. Both go
through would_disqualify() so they always agree.
"""

from typing import Optional

from .answers import AnswerSet
from .questions import AvailableCapital, Question, Readiness, StrategyCallCommitment


DISQUALIFYING_ANSWERS: dict[Question, frozenset[str]] = {
    Question.AVAILABLE_CAPITAL: frozenset({
        AvailableCapital.UNDER_10K.value,
        AvailableCapital.FROM_10K_TO_20K.value,
    }),
    Question.READY_TO_MOVE_FORWARD: frozenset({
        Readiness.JUST_EXPLORING.value,
    }),
    Question.STRATEGY_CALL_COMMITMENT: frozenset({
        StrategyCallCommitment.NO.value,
        StrategyCallCommitment.IF_FIT.value,
    }),
}


def would_disqualify(question: Question | str, value) -> bool:
    """Would answering `question` with `value` end the funnel?"""
    try:
        question = Question(question)
    except ValueError:
        return False
    if not isinstance(value, str):
        return False
    return value in DISQUALIFYING_ANSWERS.get(question, frozenset())


def disqualification_reason(answers: AnswerSet) -> Optional[tuple[Question, str]]:
    """First (question, answer) pair that disqualifies, or None."""
    for question in DISQUALIFYING_ANSWERS:
        value = answers.get(question)
        if would_disqualify(question, value):
            return question, value
    return None


def is_disqualified(answers: AnswerSet) -> bool:
    return disqualification_reason(answers) is not None
