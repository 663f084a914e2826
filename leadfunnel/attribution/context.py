"""What we know about the visitor's browser when the questionnaire opens."""

from dataclasses import dataclass, field
from typing import Optional

UTM_KEYS = ("utm_source", "utm_campaign", "utm_medium", "utm_content", "utm_term")


@dataclass
class VisitorContext:
    referrer: str = ""
    query: dict[str, str] = field(default_factory=dict)
    cookies: dict[str, str] = field(default_factory=dict)
    session_storage: dict[str, str] = field(default_factory=dict)
    user_agent: str = ""
    page_url: str = ""


@dataclass
class UtmParams:
    utm_source: Optional[str] = None
    utm_campaign: Optional[str] = None
    utm_medium: Optional[str] = None
    utm_content: Optional[str] = None
    utm_term: Optional[str] = None

    @classmethod
    def from_query(cls, query: dict[str, str]) -> "UtmParams":
        return cls(**{key: query.get(key) or None for key in UTM_KEYS})

    def to_dict(self) -> dict[str, Optional[str]]:
        return {key: getattr(self, key) for key in UTM_KEYS}
