"""Tests for landing variant attribution."""

from leadfunnel.attribution.context import UtmParams, VisitorContext
from leadfunnel.attribution.variant import (
    UNKNOWN_VARIANT,
    LandingVariant,
    VariantResolver,
    VariantTag,
)
from leadfunnel.storage.snapshot import PATH_KEY, VARIANT_KEY


class TestLandingVariant:
    def test_flags(self):
        variant = LandingVariant(VariantTag.VARIANT_A, "/a")
        assert variant.ab_test_variant == "a"
        assert variant.is_variant_a
        assert not variant.is_variant_1
        assert not variant.is_root_redirect

    def test_unknown(self):
        assert UNKNOWN_VARIANT.variant is VariantTag.UNKNOWN
        assert UNKNOWN_VARIANT.ab_test_variant == "root"

    def test_odd_path(self):
        assert LandingVariant(VariantTag.UNKNOWN, "/elsewhere").ab_test_variant == "unknown"


class TestVariantResolver:
    async def test_referrer_path(self, kv, store):
        """A visitor arriving from /a is attributed to variant A, and it sticks."""
        variant = await VariantResolver(store).resolve(VisitorContext(referrer="https://example.com/a?x=1"))
        assert variant == LandingVariant(VariantTag.VARIANT_A, "/a")
        assert kv.data[VARIANT_KEY] == "variant_a"
        assert kv.data[PATH_KEY] == "/a"

    async def test_watch_page_is_root_redirect(self, store):
        variant = await VariantResolver(store).resolve(VisitorContext(referrer="https://example.com/watch"))
        assert variant == LandingVariant(VariantTag.ROOT_REDIRECT, "/")

    async def test_stored_value_wins(self, kv, store):
        await store.save_variant("variant_1", "/1")
        context = VisitorContext(referrer="https://example.com/a", query={"variant": "root"})
        assert await VariantResolver(store).resolve(context) == LandingVariant(VariantTag.VARIANT_1, "/1")

    async def test_invalid_stored_value_is_ignored(self, kv, store):
        kv.data.update({VARIANT_KEY: "bogus", PATH_KEY: "/zz"})
        context = VisitorContext(query={"v": "1"})
        assert await VariantResolver(store).resolve(context) == LandingVariant(VariantTag.VARIANT_1, "/1")

    async def test_priority_order(self, store):
        """Referrer beats query beats cookie beats session storage."""
        context = VisitorContext(
            referrer="https://example.com/unrelated",
            query={"variant": "a"},
            cookies={"ab_variant": "1"},
            session_storage={VARIANT_KEY: "root_redirect", PATH_KEY: "/"},
        )
        assert (await VariantResolver(store).resolve(context)).variant is VariantTag.VARIANT_A

    async def test_cookie_then_session_storage(self, kv, store):
        context = VisitorContext(cookies={"ab_variant": "root"})
        assert (await VariantResolver(store).resolve(context)).variant is VariantTag.ROOT_REDIRECT

        kv.data.clear()
        context = VisitorContext(session_storage={VARIANT_KEY: "variant_1", PATH_KEY: "/1"})
        assert (await VariantResolver(store).resolve(context)).variant is VariantTag.VARIANT_1

    async def test_nothing_found(self, kv, store):
        assert await VariantResolver(store).resolve(VisitorContext()) == UNKNOWN_VARIANT
        assert VARIANT_KEY not in kv.data


class TestUtmParams:
    def test_from_query(self):
        utm = UtmParams.from_query({"utm_source": "fb", "utm_term": "", "other": "x"})
        assert utm.to_dict() == {
            "utm_source": "fb",
            "utm_campaign": None,
            "utm_medium": None,
            "utm_content": None,
            "utm_term": None,
        }
