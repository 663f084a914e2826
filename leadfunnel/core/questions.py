"""
Questionnaire Definition
========================
Every step, question and answer option the funnel knows about.
Answers are stored as the option's string value; the enums are str
subclasses so a stored answer compares equal to its option.
"""

from enum import Enum, IntEnum


class Question(str, Enum):
    # Questionnaire
    BUSINESS_JOURNEY = "businessJourney"
    INTEREST_REASONS = "interestReasons"
    AVAILABLE_CAPITAL = "availableCapital"
    MAIN_GOAL = "mainGoal"
    TIME_COMMITMENT = "timeCommitment"
    READY_TO_MOVE_FORWARD = "readyToMoveForward"
    SUPPORT_NEEDED = "supportNeeded"
    STRATEGY_CALL_COMMITMENT = "strategyCallCommitment"

    # Contact
    FIRST_NAME = "firstName"
    LAST_NAME = "lastName"
    EMAIL = "email"
    PHONE = "phone"


class Step(IntEnum):
    BUSINESS_JOURNEY = 1
    INTEREST_REASONS = 2
    AVAILABLE_CAPITAL = 3
    MAIN_GOAL = 4
    TIME_COMMITMENT = 5
    READY_TO_MOVE_FORWARD = 6
    SUPPORT_NEEDED = 7
    STRATEGY_CALL_COMMITMENT = 8
    FULL_NAME = 9
    EMAIL = 10
    PHONE = 11


FIRST_STEP = Step.BUSINESS_JOURNEY
LAST_STEP = Step.PHONE

# Escape value: picking it asks for free text instead of moving on
OTHER_OPTION = "Other (specify below)"


# ── Options ───────────────────────────────────────────────────────────────────

class BusinessJourney(str, Enum):
    SIDE_PROJECT = "I have a job and want to build something on the side"
    TRIED_ONLINE = "I've tried other online businesses but nothing stuck"
    MORE_PASSIVE = "I currently run a business but want something more passive"
    LOOKED_INTO_SOLAR = "I've looked into solar but never took action"
    ACTIVELY_LOOKING = "I'm actively looking for the right opportunity to invest in"


class InterestReason(str, Enum):
    OUTSIDE_9_TO_5 = "I want to build income outside of a 9–5"
    MORE_STABLE = "I'm looking for something more stable than crypto/eComm/etc"
    PROVEN_SYSTEM = "I want a proven system I don't have to build from scratch"
    TIME_FREEDOM = "I want time freedom and location flexibility"
    CLEAN_ENERGY = "I'm interested in the long-term growth of clean energy"


class AvailableCapital(str, Enum):
    UNDER_10K = "Less than $10,000"
    FROM_10K_TO_20K = "$10,000–$20,000"
    FROM_20K_TO_30K = "$20,000–$30,000"
    FROM_30K_TO_50K = "$30,000–$50,000"
    OVER_50K = "$50,000+"


class MainGoal(str, Enum):
    SECOND_INCOME = "Build a second income stream"
    LEAVE_JOB = "Transition out of my job"
    REPLACE_INCOME = "Replace or surpass my current income"
    HANDS_FREE = "Build long-term, hands-free income"
    EXPLORING = "Not sure yet — just exploring"


class TimeCommitment(str, Enum):
    YES = "Yes"
    NO = "No"
    DEPENDS = "Depends on what that looks like"


class Readiness(str, Enum):
    ONE_TO_TWO_WEEKS = "Within 1–2 weeks"
    THIRTY_DAYS = "Within 30 days"
    JUST_EXPLORING = "Just exploring — not sure yet"


class SupportNeeded(str, Enum):
    BUSINESS_MODEL = "Understanding the business model and earning potential"
    LEAD_GENERATION = "How we generate and qualify solar leads"
    LEGAL = "Legal, compliance, and business structure"
    WEEKLY_TIME = "What the weekly time commitment looks like"
    SCALABILITY = "Long-term scalability and exit potential"
    OTHER = OTHER_OPTION


class StrategyCallCommitment(str, Enum):
    YES = "Yes"
    NO = "No"
    IF_FIT = "Only if I feel like it's a fit after watching the video"


QUESTION_OPTIONS: dict[Question, type[Enum]] = {
    Question.BUSINESS_JOURNEY: BusinessJourney,
    Question.INTEREST_REASONS: InterestReason,
    Question.AVAILABLE_CAPITAL: AvailableCapital,
    Question.MAIN_GOAL: MainGoal,
    Question.TIME_COMMITMENT: TimeCommitment,
    Question.READY_TO_MOVE_FORWARD: Readiness,
    Question.SUPPORT_NEEDED: SupportNeeded,
    Question.STRATEGY_CALL_COMMITMENT: StrategyCallCommitment,
}

SINGLE_SELECT = frozenset({
    Question.BUSINESS_JOURNEY,
    Question.AVAILABLE_CAPITAL,
    Question.MAIN_GOAL,
    Question.TIME_COMMITMENT,
    Question.READY_TO_MOVE_FORWARD,
    Question.STRATEGY_CALL_COMMITMENT,
})

MULTI_SELECT = frozenset({
    Question.INTEREST_REASONS,
    Question.SUPPORT_NEEDED,
})

QUESTIONNAIRE = tuple(QUESTION_OPTIONS)

# Fields that must hold a value for a step to count as answered
STEP_FIELDS: dict[Step, tuple[Question, ...]] = {
    Step.BUSINESS_JOURNEY: (Question.BUSINESS_JOURNEY,),
    Step.INTEREST_REASONS: (Question.INTEREST_REASONS,),
    Step.AVAILABLE_CAPITAL: (Question.AVAILABLE_CAPITAL,),
    Step.MAIN_GOAL: (Question.MAIN_GOAL,),
    Step.TIME_COMMITMENT: (Question.TIME_COMMITMENT,),
    Step.READY_TO_MOVE_FORWARD: (Question.READY_TO_MOVE_FORWARD,),
    Step.SUPPORT_NEEDED: (Question.SUPPORT_NEEDED,),
    Step.STRATEGY_CALL_COMMITMENT: (Question.STRATEGY_CALL_COMMITMENT,),
    Step.FULL_NAME: (Question.FIRST_NAME, Question.LAST_NAME),
    Step.EMAIL: (Question.EMAIL,),
    Step.PHONE: (Question.PHONE,),
}

QUESTION_STEP: dict[Question, Step] = {
    question: step for step, questions in STEP_FIELDS.items() for question in questions
}


def is_valid_option(question: Question, value: str) -> bool:
    """True if `value` is one of the fixed options for `question`."""
    options = QUESTION_OPTIONS.get(question)
    if options is None:
        return False
    return value in {option.value for option in options}
