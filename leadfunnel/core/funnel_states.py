"""
Wizard States
=============
The questionnaire is in exactly ONE phase at any time. While ANSWERING it
also sits on one step, 1..11.

    ANSWERING ──SUBMIT──> SUBMITTING ──SUBMIT_FINISHED──> REDIRECTED
        │  ^                  │
        │  └─SUBMIT_REJECTED──┘
        └──DISQUALIFY──> DISQUALIFIED

Anything not in the table below is a no-op.
"""

from dataclasses import dataclass
from enum import Enum
from typing import Callable, NamedTuple, Optional

from .answers import AnswerSet
from .questions import FIRST_STEP, LAST_STEP
from .validation import is_step_complete


class WizardPhase(str, Enum):
    ANSWERING = "ANSWERING"          # On one of the 11 steps
    SUBMITTING = "SUBMITTING"        # Final answers being delivered
    DISQUALIFIED = "DISQUALIFIED"    # Sent to the rejection page (terminal)
    REDIRECTED = "REDIRECTED"        # Sent on after submission (terminal)


class WizardEvent(str, Enum):
    ADVANCE = "ADVANCE"
    RETREAT = "RETREAT"
    DISQUALIFY = "DISQUALIFY"
    SUBMIT = "SUBMIT"
    SUBMIT_REJECTED = "SUBMIT_REJECTED"
    SUBMIT_FINISHED = "SUBMIT_FINISHED"
    RESET = "RESET"


class Effect(str, Enum):
    NOTIFY_CONTINUE = "NOTIFY_CONTINUE"
    RESET_QUESTION_TIMER = "RESET_QUESTION_TIMER"
    NOTIFY_SUBMITTED = "NOTIFY_SUBMITTED"
    CANCEL_AUTOSAVE = "CANCEL_AUTOSAVE"


class Transition(NamedTuple):
    to: WizardPhase
    step_delta: int = 0
    reset_step: bool = False
    effects: tuple[Effect, ...] = ()


@dataclass(frozen=True)
class WizardState:
    phase: WizardPhase = WizardPhase.ANSWERING
    step: int = FIRST_STEP


TERMINAL_PHASES = {
    WizardPhase.DISQUALIFIED,
    WizardPhase.REDIRECTED,
}

TRANSITIONS = {
    # Moving between steps
    (WizardPhase.ANSWERING, WizardEvent.ADVANCE): Transition(
        WizardPhase.ANSWERING, step_delta=1,
        effects=(Effect.NOTIFY_CONTINUE, Effect.RESET_QUESTION_TIMER),
    ),
    (WizardPhase.ANSWERING, WizardEvent.RETREAT): Transition(WizardPhase.ANSWERING, step_delta=-1),
    (WizardPhase.ANSWERING, WizardEvent.RESET): Transition(WizardPhase.ANSWERING, reset_step=True),

    # Disqualifying click
    (WizardPhase.ANSWERING, WizardEvent.DISQUALIFY): Transition(
        WizardPhase.DISQUALIFIED, effects=(Effect.CANCEL_AUTOSAVE,),
    ),

    # Submission
    (WizardPhase.ANSWERING, WizardEvent.SUBMIT): Transition(
        WizardPhase.SUBMITTING, effects=(Effect.CANCEL_AUTOSAVE, Effect.NOTIFY_SUBMITTED),
    ),
    (WizardPhase.SUBMITTING, WizardEvent.SUBMIT_REJECTED): Transition(WizardPhase.ANSWERING),
    (WizardPhase.SUBMITTING, WizardEvent.SUBMIT_FINISHED): Transition(WizardPhase.REDIRECTED),
}

# Extra conditions on top of the table, checked against the current step
GUARDS: dict[WizardEvent, Callable[[int, AnswerSet], bool]] = {
    WizardEvent.ADVANCE: lambda step, answers: step < LAST_STEP and is_step_complete(step, answers),
    WizardEvent.RETREAT: lambda step, answers: step > FIRST_STEP,
    WizardEvent.SUBMIT: lambda step, answers: step == LAST_STEP and is_step_complete(step, answers),
}


def next_transition(state: WizardState, event: WizardEvent, answers: AnswerSet) -> Optional[Transition]:
    """Look up a legal move, or None if the event does nothing here."""
    transition = TRANSITIONS.get((state.phase, event))
    if transition is None:
        return None
    guard = GUARDS.get(event)
    if guard is not None and not guard(state.step, answers):
        return None
    return transition


def apply_transition(state: WizardState, transition: Transition) -> WizardState:
    step = FIRST_STEP if transition.reset_step else state.step + transition.step_delta
    return WizardState(phase=transition.to, step=min(max(step, FIRST_STEP), LAST_STEP))
