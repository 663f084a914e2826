"""
Outbound Payloads
=================
Flat JSON objects posted to the CRM API and the webhook.
One canonical payload per submission; a smaller one for disqualified leads.
"""

from datetime import datetime
from typing import Any, Optional

from ..attribution.context import UtmParams
from ..attribution.variant import LandingVariant
from ..core.answers import AnswerSet, ContactInfo

SOURCE = "renewable_energy_questionnaire"
DISQUALIFIED_SOURCE = f"{SOURCE}_disqualified"
VARIANT_SOURCE = "applynow_form"

PLACEHOLDER_EMAIL = "user@example.com"
UNKNOWN_EMAIL = "unknown@example.com"


def attribution_fields(variant: LandingVariant, now: datetime) -> dict[str, Any]:
    return {
        "visitedPath": variant.path,
        "landingPageVariant": variant.variant.value,
        "ab_test_variant": variant.ab_test_variant,
        "ab_test_path": variant.path,
        "is_variant_a": variant.is_variant_a,
        "is_variant_1": variant.is_variant_1,
        "is_root_redirect": variant.is_root_redirect,
        "ab_variant": variant.variant.value,
        "variant_source": VARIANT_SOURCE,
        "variant_timestamp": now.isoformat(),
    }


def tracking_fields(answers: AnswerSet) -> dict[str, Optional[str]]:
    return {
        "fbc": answers.fbc or None,
        "fbp": answers.fbp or None,
        "userAgent": answers.user_agent or None,
        "ip": answers.ip or None,
    }


def build_lead_payload(
    answers: AnswerSet,
    contact: ContactInfo,
    variant: LandingVariant,
    utm: UtmParams,
    *,
    disqualified: bool,
    now: datetime,
    page_url: str = "",
) -> dict[str, Any]:
    timestamp = now.isoformat()
    return {
        # Contact
        "firstName": contact.first_name,
        "lastName": contact.last_name,
        "name": f"{contact.first_name} {contact.last_name}".strip(),
        "email": contact.email,
        "phone": contact.phone,
        "event_id": f"questionnaire-{contact.email}-{int(now.timestamp() * 1000)}",

        # Answers
        **answers.questionnaire(),

        # Metadata
        "source": SOURCE,
        "timestamp": timestamp,
        "submittedAt": timestamp,
        "submittedFrom": page_url or None,
        "qualified": not disqualified,
        "disqualified": disqualified,

        **attribution_fields(variant, now),
        **utm.to_dict(),
        **tracking_fields(answers),
    }


def build_disqualification_payload(
    answers: AnswerSet,
    variant: LandingVariant,
    utm: UtmParams,
    *,
    reason: str,
    step: int,
    now: datetime,
    page_url: str = "",
) -> dict[str, Any]:
    """Whatever we have at the moment a disqualifying answer was clicked."""
    return {
        "name": answers.full_name or "Unknown",
        "email": answers.email or UNKNOWN_EMAIL,
        "phone": answers.phone,

        **answers.questionnaire(),

        "qualified": False,
        "disqualified": True,
        "disqualification_reason": reason,
        "disqualification_step": step,

        "source": DISQUALIFIED_SOURCE,
        "submittedFrom": page_url or None,
        "submittedAt": now.isoformat(),

        **attribution_fields(variant, now),
        **utm.to_dict(),
        **tracking_fields(answers),
    }
