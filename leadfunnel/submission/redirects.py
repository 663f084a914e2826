"""Where the visitor goes once the funnel is over."""

from dataclasses import dataclass, field
from urllib.parse import quote

from ..config import RedirectSettings
from ..core.answers import ContactInfo

# Same set encodeURIComponent leaves alone
_SAFE = "!~*'()"


@dataclass(frozen=True)
class RedirectTarget:
    path: str
    params: tuple[tuple[str, str], ...] = field(default=())

    @property
    def url(self) -> str:
        if not self.params:
            return self.path
        query = "&".join(f"{key}={quote(value, safe=_SAFE)}" for key, value in self.params)
        return f"{self.path}?{query}"

    def __str__(self) -> str:
        return self.url


def disqualified_redirect(settings: RedirectSettings) -> RedirectTarget:
    return RedirectTarget(settings.disqualified_path)


def entry_redirect(settings: RedirectSettings) -> RedirectTarget:
    return RedirectTarget(settings.entry_path)


def booking_redirect(settings: RedirectSettings, contact: ContactInfo) -> RedirectTarget:
    return RedirectTarget(
        settings.booking_path,
        (
            ("firstName", contact.first_name),
            ("lastName", contact.last_name),
            ("email", contact.email),
            ("phone", contact.phone),
        ),
    )
