"""Mail collaborator — hands rendered messages to a transport.

Two transports:

- :class:`LogMailer` writes each message to the log. The default, so a
  fresh install never sends real mail.
- :class:`HttpMailer` posts JSON to a transactional mail API
  (``POST {api_url}/emails`` with a bearer key, Resend-compatible).

Both raise :class:`~elxctl.domain.errors.DispatchError` on failure and
return normally on success; nothing else is part of the contract.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Protocol

import httpx

from elxctl.domain.errors import DispatchError

if TYPE_CHECKING:
    from elxctl.config.models import MailConfig
    from elxctl.domain.notifications import MailMessage

logger = logging.getLogger(__name__)


class Mailer(Protocol):
    def dispatch(self, message: MailMessage) -> None: ...


class LogMailer:
    """Log messages at INFO instead of delivering them."""

    def __init__(self, from_address: str) -> None:
        self._from = from_address

    def dispatch(self, message: MailMessage) -> None:
        logger.info(
            "mail.dispatch from=%s to=%s cc=%s subject=%r\n%s",
            self._from,
            message.to,
            ",".join(message.cc),
            message.subject,
            message.body,
        )


class HttpMailer:
    """Send messages through a JSON mail API.

    Parameters:
        api_url: Base URL of the mail API.
        api_key: Bearer token.
        from_address: Sender address.
        timeout: Request timeout in seconds.
        client: Optional pre-built ``httpx.Client`` (tests inject one
            with a ``MockTransport``).
    """

    def __init__(
        self,
        *,
        api_url: str,
        api_key: str,
        from_address: str,
        timeout: float = 30.0,
        client: httpx.Client | None = None,
    ) -> None:
        self._from = from_address
        self._client = client or httpx.Client(
            base_url=api_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
            },
            timeout=timeout,
        )

    def dispatch(self, message: MailMessage) -> None:
        payload: dict[str, object] = {
            "from": self._from,
            "to": [message.to],
            "subject": message.subject,
            "text": message.body,
        }
        if message.cc:
            payload["cc"] = list(message.cc)
        if message.tags:
            payload["tags"] = [{"name": k, "value": v} for k, v in message.tags.items()]

        try:
            response = self._client.post("/emails", json=payload)
        except httpx.HTTPError as exc:
            raise DispatchError(f"Mail API unreachable: {exc}", to=message.to) from exc

        if response.status_code >= 300:
            raise DispatchError(
                f"Mail API error: {response.status_code} - {response.text}",
                to=message.to,
                status_code=response.status_code,
            )
        logger.debug("Mail accepted for %s: %s", message.to, response.text)

    def close(self) -> None:
        self._client.close()


def build_mailer(config: MailConfig) -> Mailer:
    """Create the transport named in the ``[mail]`` config section."""
    if config.transport == "http":
        if not config.api_key:
            msg = "mail.transport = 'http' requires mail.api_key (or ELXCTL_MAIL__API_KEY)"
            raise ValueError(msg)
        return HttpMailer(
            api_url=config.api_url,
            api_key=config.api_key,
            from_address=config.from_address,
            timeout=config.timeout_seconds,
        )
    return LogMailer(config.from_address)
