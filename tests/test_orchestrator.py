"""Tests for contact resolution, lead payloads and multi-sink submission."""

import json

import pytest

from leadfunnel.attribution.context import UtmParams
from leadfunnel.attribution.variant import UNKNOWN_VARIANT, LandingVariant, VariantTag
from leadfunnel.core.answers import AnswerSet, ContactInfo, InitialContact
from leadfunnel.errors import SubmissionValidationError
from leadfunnel.storage.snapshot import ANSWERS_KEY
from leadfunnel.submission.orchestrator import merge_contact
from leadfunnel.submission.payload import SOURCE

from .conftest import FIXED_NOW, qualified_answers

BOOKING_URL = "/book-call?firstName=Jane&lastName=Doe&email=jane%40x.com&phone=5551234567"


class TestMergeContact:
    def test_answers_win(self):
        contact = merge_contact(
            qualified_answers(),
            InitialContact("Other Person", "other@x.com", "999"),
            ContactInfo(email="fallback@x.com"),
        )
        assert (contact.first_name, contact.email, contact.phone) == ("Jane", "jane@x.com", "5551234567")

    def test_initial_contact_then_fallback(self):
        contact = merge_contact(
            AnswerSet(),
            InitialContact("Mary Ann Smith", "", "555"),
            ContactInfo(email="fallback@x.com", phone="111"),
        )
        assert contact.first_name == "Mary"
        assert contact.last_name == "Ann Smith"
        assert contact.full_name == "Mary Ann Smith"
        assert contact.email == "fallback@x.com"
        assert contact.phone == "555"


class TestSubmit:
    async def test_end_to_end_qualified(self, orchestrator, api_sink, webhook_sink, store, kv):
        """Qualified answers reach both sinks and end on the booking page."""
        await store.save_answers(qualified_answers())
        variant = LandingVariant(VariantTag.VARIANT_A, "/a")

        outcome = await orchestrator.submit(
            qualified_answers(), variant, UtmParams(utm_source="fb"), page_url="https://example.com/apply",
        )

        assert outcome.redirect.url == BOOKING_URL
        assert not outcome.disqualified
        assert outcome.delivered
        assert not outcome.recovered
        assert ANSWERS_KEY not in kv.data

        payload = api_sink.payloads[0]
        assert webhook_sink.payloads == [payload]
        assert payload["name"] == "Jane Doe"
        assert payload["qualified"] is True
        assert payload["source"] == SOURCE
        assert payload["submittedAt"] == FIXED_NOW.isoformat()
        assert payload["submittedFrom"] == "https://example.com/apply"
        assert payload["availableCapital"] == "$30,000–$50,000"
        assert payload["landingPageVariant"] == "variant_a"
        assert payload["ab_test_variant"] == "a"
        assert payload["utm_source"] == "fb"
        assert payload["utm_medium"] is None
        assert payload["fbc"] is None
        assert payload["event_id"] == f"questionnaire-jane@x.com-{int(FIXED_NOW.timestamp() * 1000)}"
        json.dumps(payload)

    async def test_disqualified_answers_still_delivered(self, orchestrator, api_sink):
        answers = qualified_answers(strategy_call_commitment="No")
        outcome = await orchestrator.submit(answers, UNKNOWN_VARIANT)
        assert outcome.disqualified
        assert outcome.redirect.url == "/weappreciateyou"
        assert api_sink.payloads[0]["disqualified"] is True

    async def test_placeholder_email(self, orchestrator, api_sink):
        outcome = await orchestrator.submit(qualified_answers(email=""), UNKNOWN_VARIANT)
        assert outcome.contact.email == "user@example.com"
        assert api_sink.payloads[0]["email"] == "user@example.com"

    async def test_initial_contact_fills_missing_name(self, orchestrator, store):
        await store.save_initial_contact(InitialContact("Jane Doe", "jane@x.com", "5551234567"))
        answers = AnswerSet(available_capital="$50,000+")
        outcome = await orchestrator.submit(answers, UNKNOWN_VARIANT)
        assert outcome.redirect.url == BOOKING_URL

    async def test_invalid_email_rejected_before_delivery(self, orchestrator, api_sink, webhook_sink):
        with pytest.raises(SubmissionValidationError, match="A valid email address is required"):
            await orchestrator.submit(qualified_answers(email="jane@"), UNKNOWN_VARIANT)
        assert api_sink.payloads == []
        assert webhook_sink.payloads == []

    async def test_contact_only_rejected(self, orchestrator):
        answers = AnswerSet(first_name="Jane", email="jane@x.com")
        with pytest.raises(SubmissionValidationError, match="Please answer at least one question"):
            await orchestrator.submit(answers, UNKNOWN_VARIANT)

    async def test_failed_api_still_hits_webhook(self, orchestrator, api_sink, webhook_sink, kv, store):
        """One sink down: the other still gets the lead and the visitor still moves on."""
        api_sink.ok = False
        await store.save_answers(qualified_answers())

        outcome = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)

        assert outcome.partial
        assert not outcome.delivered
        assert len(webhook_sink.payloads) == 1
        assert outcome.redirect.url == BOOKING_URL
        assert ANSWERS_KEY not in kv.data

    async def test_raising_sink_is_contained(self, orchestrator, api_sink, webhook_sink):
        webhook_sink.raises = RuntimeError("socket closed")
        outcome = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        assert [d.ok for d in outcome.deliveries] == [True, False]
        assert outcome.deliveries[1].error == "socket closed"
        assert outcome.redirect.url == BOOKING_URL

    async def test_both_sinks_down(self, orchestrator, api_sink, webhook_sink):
        api_sink.ok = webhook_sink.ok = False
        outcome = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        assert not outcome.delivered
        assert not outcome.partial
        assert outcome.redirect.url == BOOKING_URL

    async def test_unexpected_error_still_redirects(self, orchestrator, store, api_sink):
        """Anything outside validation is swallowed and the visitor is still sent on."""

        async def broken_load():
            raise RuntimeError("unexpected")

        store.load_initial_contact = broken_load
        outcome = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        assert outcome.recovered
        assert outcome.redirect.url == BOOKING_URL
        assert api_sink.payloads == []

    async def test_unexpected_error_clears_snapshot(self, orchestrator, store, kv):
        await store.save_answers(qualified_answers())

        async def broken_load():
            raise RuntimeError("unexpected")

        store.load_initial_contact = broken_load
        outcome = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        assert outcome.recovered
        assert ANSWERS_KEY not in kv.data

    async def test_resubmission_sends_same_answers(self, orchestrator, api_sink):
        first = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        second = await orchestrator.submit(qualified_answers(), UNKNOWN_VARIANT)
        assert first.redirect == second.redirect
        assert api_sink.payloads[0] == api_sink.payloads[1]

    async def test_caller_answers_untouched(self, orchestrator):
        answers = qualified_answers(email="")
        await orchestrator.submit(answers, UNKNOWN_VARIANT)
        assert answers.email == ""


class TestReportDisqualification:
    async def test_webhook_only(self, orchestrator, api_sink, webhook_sink):
        answers = AnswerSet(first_name="Jane", last_name="Doe", available_capital="Less than $10,000")
        result = await orchestrator.report_disqualification(answers, UNKNOWN_VARIANT, step=3)

        assert result.ok
        assert api_sink.payloads == []
        payload = webhook_sink.payloads[0]
        assert payload["name"] == "Jane Doe"
        assert payload["disqualification_reason"] == "Less than $10,000"
        assert payload["disqualification_step"] == 3
        assert payload["source"].endswith("_disqualified")

    async def test_failure_is_reported_not_raised(self, orchestrator, webhook_sink):
        webhook_sink.raises = RuntimeError("down")
        result = await orchestrator.report_disqualification(AnswerSet(), UNKNOWN_VARIANT, step=6, reason="x")
        assert not result.ok
        assert result.error == "down"
