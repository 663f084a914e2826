"""
Answer Set
==========
Everything the visitor has told us so far, plus best-effort tracking fields.
Wire keys are camelCase; they are what gets persisted and posted to sinks.
"""

from dataclasses import dataclass, field, fields, replace
from typing import Any, Optional

from .questions import QUESTIONNAIRE, Question


def _wire(name: str, *, multi: bool = False):
    return {"wire": name, "multi": multi}


@dataclass
class AnswerSet:
    # Contact
    first_name: str = field(default="", metadata=_wire("firstName"))
    last_name: str = field(default="", metadata=_wire("lastName"))
    email: str = field(default="", metadata=_wire("email"))
    confirm_email: str = field(default="", metadata=_wire("confirmEmail"))
    phone: str = field(default="", metadata=_wire("phone"))

    # Questionnaire
    business_journey: str = field(default="", metadata=_wire("businessJourney"))
    interest_reasons: set[str] = field(default_factory=set, metadata=_wire("interestReasons", multi=True))
    available_capital: str = field(default="", metadata=_wire("availableCapital"))
    main_goal: str = field(default="", metadata=_wire("mainGoal"))
    time_commitment: str = field(default="", metadata=_wire("timeCommitment"))
    ready_to_move_forward: str = field(default="", metadata=_wire("readyToMoveForward"))
    support_needed: set[str] = field(default_factory=set, metadata=_wire("supportNeeded", multi=True))
    strategy_call_commitment: str = field(default="", metadata=_wire("strategyCallCommitment"))
    other_support_needed: str = field(default="", metadata=_wire("otherSupportNeeded"))

    # Tracking (all optional)
    fbc: str = field(default="", metadata=_wire("fbc"))
    fbp: str = field(default="", metadata=_wire("fbp"))
    user_agent: str = field(default="", metadata=_wire("userAgent"))
    ip: str = field(default="", metadata=_wire("ip"))
    ab_variant: str = field(default="", metadata=_wire("ab_variant"))

    # ── Access by question ──────────────────────────────────────────────────

    def get(self, key: Question | str) -> Any:
        return getattr(self, _attr_for(key))

    def set(self, key: Question | str, value: Any) -> None:
        name = _attr_for(key)
        if name in _MULTI_ATTRS:
            value = set(value or ())
        else:
            value = "" if value is None else str(value)
        setattr(self, name, value)

    def copy(self) -> "AnswerSet":
        return replace(
            self,
            interest_reasons=set(self.interest_reasons),
            support_needed=set(self.support_needed),
        )

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def has_answered_questions(self) -> bool:
        """At least one questionnaire field is non-empty"""
        return any(self.get(question) for question in QUESTIONNAIRE)

    def questionnaire(self) -> dict[str, Any]:
        """Questionnaire answers keyed by wire name, sets as sorted lists."""
        data = {question.value: _plain(self.get(question)) for question in QUESTIONNAIRE}
        data["otherSupportNeeded"] = self.other_support_needed
        return data

    # ── Serialization ───────────────────────────────────────────────────────

    def to_dict(self) -> dict[str, Any]:
        return {f.metadata["wire"]: _plain(getattr(self, f.name)) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AnswerSet":
        """
        Build an AnswerSet from persisted JSON.
        Unknown keys are ignored; values of the wrong type fall back to empty.
        """
        answers = cls()
        for f in fields(cls):
            raw = data.get(f.metadata["wire"])
            if f.metadata["multi"]:
                if isinstance(raw, (list, tuple, set)):
                    setattr(answers, f.name, {str(v) for v in raw if v is not None})
            elif isinstance(raw, (str, int, float)) and not isinstance(raw, bool):
                setattr(answers, f.name, str(raw))
        return answers


_WIRE_TO_ATTR = {f.metadata["wire"]: f.name for f in fields(AnswerSet)}
_MULTI_ATTRS = {f.name for f in fields(AnswerSet) if f.metadata["multi"]}


def _attr_for(key: Question | str) -> str:
    wire = key.value if isinstance(key, Question) else key
    try:
        return _WIRE_TO_ATTR[wire]
    except KeyError:
        raise KeyError(f"Unknown answer field: {wire}") from None


def _plain(value: Any) -> Any:
    if isinstance(value, set):
        return sorted(value)
    return value


# ── Contact details ───────────────────────────────────────────────────────────

@dataclass
class InitialContact:
    """Contact details captured on an earlier page of the funnel."""
    full_name: str = ""
    email: str = ""
    phone: str = ""

    def split_name(self) -> tuple[str, str]:
        parts = self.full_name.strip().split()
        if not parts:
            return "", ""
        return parts[0], " ".join(parts[1:])

    def to_dict(self) -> dict[str, str]:
        return {"fullName": self.full_name, "email": self.email, "phone": self.phone}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "InitialContact":
        return cls(
            full_name=str(data.get("fullName") or ""),
            email=str(data.get("email") or ""),
            phone=str(data.get("phone") or ""),
        )


@dataclass
class ContactInfo:
    """The most complete contact triple known at submission time."""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    phone: str = ""
    full_name: str = ""

    @classmethod
    def from_query(cls, query: dict[str, str]) -> "ContactInfo":
        return cls(
            first_name=query.get("firstName", ""),
            last_name=query.get("lastName", ""),
            email=query.get("email", ""),
            phone=query.get("phone", ""),
            full_name=query.get("fullName", ""),
        )


@dataclass
class AutoFillData:
    """Shape returned by an optional auto-fill source."""
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
