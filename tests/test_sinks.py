"""Tests for HTTP delivery sinks, using httpx.MockTransport."""

import json

import httpx

from leadfunnel.config import SinkSettings
from leadfunnel.submission.sinks import HttpSink, build_sinks


def _transport(handler):
    return httpx.MockTransport(handler)


class TestHttpSink:
    async def test_posts_json(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"ok": True})

        sink = HttpSink("webhook", "http://hooks.test/lead", transport=_transport(handler))
        result = await sink.deliver({"email": "jane@x.com"})

        assert result.ok
        assert result.status_code == 200
        assert seen[0].method == "POST"
        assert json.loads(seen[0].content) == {"email": "jane@x.com"}

    async def test_non_2xx_is_failure(self):
        sink = HttpSink("webhook", "http://hooks.test/lead",
                        transport=_transport(lambda request: httpx.Response(503, text="busy")))
        result = await sink.deliver({})
        assert not result.ok
        assert result.status_code == 503
        assert result.error == "HTTP 503"

    async def test_network_error_is_failure(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        sink = HttpSink("api", "http://crm.test/submit", transport=_transport(handler))
        result = await sink.deliver({})
        assert not result.ok
        assert result.status_code is None
        assert "refused" in result.error

    async def test_success_flag_required(self):
        sink = HttpSink(
            "api", "http://crm.test/submit", require_success_flag=True,
            transport=_transport(lambda request: httpx.Response(200, json={"success": False, "message": "Duplicate"})),
        )
        result = await sink.deliver({})
        assert not result.ok
        assert result.error == "Duplicate"

    async def test_success_flag_default_message(self):
        sink = HttpSink(
            "api", "http://crm.test/submit", require_success_flag=True,
            transport=_transport(lambda request: httpx.Response(200, text="not json")),
        )
        result = await sink.deliver({})
        assert result.error == "Failed to submit form"

    async def test_success_flag_present(self):
        sink = HttpSink(
            "api", "http://crm.test/submit", require_success_flag=True,
            transport=_transport(lambda request: httpx.Response(200, json={"success": True})),
        )
        assert (await sink.deliver({})).ok


class TestBuildSinks:
    async def test_headers_and_urls(self):
        seen = {}

        def handler(request):
            seen[str(request.url)] = request.headers
            return httpx.Response(200, json={"success": True})

        settings = SinkSettings(api_url="http://crm.test/submit", webhook_url="http://hooks.test/q")
        api, webhook = build_sinks(settings, transport=_transport(handler))
        await api.deliver({})
        await webhook.deliver({})

        assert seen["http://crm.test/submit"]["cache-control"] == "no-cache, no-store, must-revalidate"
        assert seen["http://hooks.test/q"]["user-agent"] == "leadfunnel-questionnaire"
        assert seen["http://hooks.test/q"]["accept"] == "application/json"
        assert api.require_success_flag and not webhook.require_success_flag
