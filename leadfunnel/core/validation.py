"""
Step Validation
===============
Decides whether the visitor may leave a step.
One rule per step; an unknown step is never complete.
"""

from typing import Callable

from .answers import AnswerSet
from .formatting import is_valid_email
from .questions import OTHER_OPTION, STEP_FIELDS, Step


def _support_needed_complete(answers: AnswerSet) -> bool:
    if not answers.support_needed:
        return False
    if OTHER_OPTION in answers.support_needed:
        return bool(answers.other_support_needed.strip())
    return True


def _full_name_complete(answers: AnswerSet) -> bool:
    return bool(answers.first_name.strip() and answers.last_name.strip())


def _email_complete(answers: AnswerSet) -> bool:
    email = answers.email.strip()
    return bool(email) and is_valid_email(email)


def _phone_complete(answers: AnswerSet) -> bool:
    return bool(answers.phone.strip())


def _answered(step: Step) -> Callable[[AnswerSet], bool]:
    (question,) = STEP_FIELDS[step]
    return lambda answers: bool(answers.get(question))


STEP_RULES: dict[Step, Callable[[AnswerSet], bool]] = {
    Step.BUSINESS_JOURNEY: _answered(Step.BUSINESS_JOURNEY),
    Step.INTEREST_REASONS: _answered(Step.INTEREST_REASONS),
    Step.AVAILABLE_CAPITAL: _answered(Step.AVAILABLE_CAPITAL),
    Step.MAIN_GOAL: _answered(Step.MAIN_GOAL),
    Step.TIME_COMMITMENT: _answered(Step.TIME_COMMITMENT),
    Step.READY_TO_MOVE_FORWARD: _answered(Step.READY_TO_MOVE_FORWARD),
    Step.SUPPORT_NEEDED: _support_needed_complete,
    Step.STRATEGY_CALL_COMMITMENT: _answered(Step.STRATEGY_CALL_COMMITMENT),
    Step.FULL_NAME: _full_name_complete,
    Step.EMAIL: _email_complete,
    Step.PHONE: _phone_complete,
}


def is_step_complete(step: int, answers: AnswerSet) -> bool:
    try:
        rule = STEP_RULES[Step(step)]
    except ValueError:
        return False
    return rule(answers)


def step_has_stored_answer(step: Step, answers: AnswerSet) -> bool:
    """Every field the step asks for holds something (used when resuming)."""
    return all(answers.get(question) for question in STEP_FIELDS[step])
