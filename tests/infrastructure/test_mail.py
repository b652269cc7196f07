"""Tests for the mail transports."""

from __future__ import annotations

import json
import logging

import httpx
import pytest

from elxctl.config.models import MailConfig
from elxctl.domain.errors import DispatchError
from elxctl.domain.notifications import MailMessage
from elxctl.infrastructure.mail import HttpMailer, LogMailer, build_mailer


def _message(**overrides) -> MailMessage:
    data = {
        "to": "consignee@example.com",
        "cc": ("shipper@example.com",),
        "subject": "Delivered: Shipment ELX-2026-0001 Successfully Completed",
        "body": "Shipment ELX-2026-0001 has been delivered.",
        "tags": {"kind": "delivered"},
    }
    data.update(overrides)
    return MailMessage(**data)


def _mailer(handler) -> HttpMailer:
    client = httpx.Client(
        base_url="https://mail.test",
        transport=httpx.MockTransport(handler),
    )
    return HttpMailer(
        api_url="https://mail.test",
        api_key="key",
        from_address="no-reply@ellcworth.com",
        client=client,
    )


class TestHttpMailer:
    def test_posts_payload(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"id": "email_1"})

        _mailer(handler).dispatch(_message())

        assert len(seen) == 1
        request = seen[0]
        assert request.method == "POST"
        assert request.url.path == "/emails"
        body = json.loads(request.content)
        assert body["from"] == "no-reply@ellcworth.com"
        assert body["to"] == ["consignee@example.com"]
        assert body["cc"] == ["shipper@example.com"]
        assert body["text"].startswith("Shipment ELX-2026-0001")
        assert body["tags"] == [{"name": "kind", "value": "delivered"}]

    def test_cc_omitted_when_empty(self) -> None:
        bodies: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={})

        _mailer(handler).dispatch(_message(cc=(), tags={}))
        assert "cc" not in bodies[0]
        assert "tags" not in bodies[0]

    def test_error_status_raises(self) -> None:
        mailer = _mailer(lambda _req: httpx.Response(422, text="invalid recipient"))
        with pytest.raises(DispatchError) as exc_info:
            mailer.dispatch(_message())
        assert exc_info.value.detail["status_code"] == 422
        assert "invalid recipient" in exc_info.value.message

    def test_transport_error_raises(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(DispatchError, match="unreachable"):
            _mailer(handler).dispatch(_message())

    def test_default_client_sends_bearer_key(self) -> None:
        mailer = HttpMailer(api_url="https://mail.test", api_key="re_secret", from_address="a@b.c")
        try:
            assert mailer._client.headers["authorization"] == "Bearer re_secret"
            assert mailer._client.base_url.host == "mail.test"
        finally:
            mailer.close()


class TestLogMailer:
    def test_logs_message(self, caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.INFO, logger="elxctl.infrastructure.mail"):
            LogMailer("no-reply@ellcworth.com").dispatch(_message())
        assert "consignee@example.com" in caplog.text
        assert "ELX-2026-0001" in caplog.text


class TestBuildMailer:
    def test_default_is_log(self) -> None:
        assert isinstance(build_mailer(MailConfig()), LogMailer)

    def test_http_requires_key(self) -> None:
        with pytest.raises(ValueError, match="api_key"):
            build_mailer(MailConfig(transport="http"))

    def test_http(self) -> None:
        mailer = build_mailer(MailConfig(transport="http", api_key="re_123"))
        assert isinstance(mailer, HttpMailer)
        mailer.close()
