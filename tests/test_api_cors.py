# Tests for the origin allow-list and CORS headers.
# Created: 2026-10-14

import pytest

from devflow.config import Settings
from devflow.security.origins import OriginPolicy

EXTENSION = "chrome-extension://abcdefghijklmnopabcdefghijklmnop"
DEPLOYMENT = "https://devflow-ai-chrome-extension.onrender.com"


class TestOriginPolicy:
    """Unit tests for OriginPolicy.is_allowed()."""

    @pytest.fixture
    def policy(self):
        return OriginPolicy(origins=[DEPLOYMENT, "https://app.example.com/"])

    @pytest.mark.parametrize(
        "origin",
        [
            EXTENSION,
            DEPLOYMENT,
            "https://app.example.com",
            "http://localhost",
            "http://localhost:5173",
            "https://127.0.0.1:8443",
            "http://[::1]:3000",
        ],
    )
    def test_allowed(self, policy, origin):
        assert policy.is_allowed(origin)

    @pytest.mark.parametrize(
        "origin",
        [
            "https://evil.example",
            "http://localhost.evil.example",
            "https://devflow-ai-chrome-extension.onrender.com.evil.example",
            "moz-extension://abc",
            "null",
        ],
    )
    def test_rejected(self, policy, origin):
        assert not policy.is_allowed(origin)

    def test_missing_origin_allowed_by_default(self, policy):
        assert policy.is_allowed(None)
        assert policy.is_allowed("")

    def test_missing_origin_can_be_refused(self):
        assert not OriginPolicy(allow_missing=False).is_allowed(None)

    def test_extension_ids_pin_extensions(self):
        policy = OriginPolicy(extension_ids=["abcdefghijklmnopabcdefghijklmnop"])
        assert policy.is_allowed(EXTENSION)
        assert not policy.is_allowed("chrome-extension://someotherextension")

    def test_from_settings(self):
        settings = Settings(
            groq_api_key="k",
            allowed_origins=["https://a.example"],
            _env_file=None,
        )
        policy = OriginPolicy.from_settings(settings)
        assert policy.is_allowed("https://a.example")
        assert policy.is_allowed(settings.deployment_origin)

    def test_cors_regex_matches_policy(self):
        import re

        regex = OriginPolicy().cors_origin_regex
        assert re.fullmatch(regex, "http://localhost:1234")
        assert re.fullmatch(regex, EXTENSION)
        assert not re.fullmatch(regex, "https://evil.example")


class TestOriginAdmission:
    """Disallowed origins never reach the handler."""

    def test_disallowed_origin_rejected(self, client, upstream):
        resp = client.post(
            "/ask", json={"prompt": "hi"}, headers={"Origin": "https://evil.example"}
        )
        assert resp.status_code == 403
        assert resp.json() == {"error": "Origin not allowed"}
        assert "access-control-allow-origin" not in resp.headers
        assert upstream.calls == []

    @pytest.mark.parametrize("origin", [EXTENSION, DEPLOYMENT, "http://localhost:5173"])
    def test_allowed_origin_gets_cors_headers(self, client, upstream, origin):
        resp = client.post("/ask", json={"prompt": "hi"}, headers={"Origin": origin})
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == origin
        assert resp.headers["access-control-allow-credentials"] == "true"
        assert resp.text == "Hello world"

    def test_no_origin_allowed(self, client, upstream):
        resp = client.post("/ask", json={"prompt": "hi"})
        assert resp.status_code == 200
        assert upstream.calls == ["hi"]

    def test_preflight_from_extension(self, client, upstream):
        resp = client.options(
            "/ask",
            headers={
                "Origin": EXTENSION,
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Content-Type",
            },
        )
        assert resp.status_code == 200
        assert resp.headers["access-control-allow-origin"] == EXTENSION
        assert "POST" in resp.headers["access-control-allow-methods"]
        assert upstream.calls == []

    def test_preflight_from_disallowed_origin(self, client):
        resp = client.options(
            "/ask",
            headers={
                "Origin": "https://evil.example",
                "Access-Control-Request-Method": "POST",
            },
        )
        assert resp.status_code >= 400
        assert "access-control-allow-origin" not in resp.headers

    def test_health_also_checks_origin(self, client):
        resp = client.get("/", headers={"Origin": "https://evil.example"})
        assert resp.status_code == 403
