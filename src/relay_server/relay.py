"""Outbound client for the messaging platform's message-send API."""
from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import httpx

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.telex.im/v1"
DEFAULT_AGENT_ID = "ai-agent-001"
DEFAULT_TIMEOUT = 10.0

_OK_STATUSES = {200, 201}


class RelayError(RuntimeError):
    """A reply could not be delivered to the messaging platform."""


class RelayClient:
    """Posts text messages on behalf of the agent. No retries."""

    def __init__(
        self,
        api_key: str,
        *,
        base_url: str = DEFAULT_BASE_URL,
        agent_id: str = DEFAULT_AGENT_ID,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.agent_id = agent_id
        self.timeout = float(timeout)
        self._transport = transport

    @property
    def messages_url(self) -> str:
        return f"{self.base_url}/messages"

    def build_message(self, to_user: str, content: str) -> Dict[str, Any]:
        return {
            "id": "",
            "from": self.agent_id,
            "to": to_user,
            "content": content,
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "type": "text",
        }

    def send(self, to_user: str, content: str) -> None:
        """Deliver ``content`` to ``to_user``; raise :class:`RelayError` on failure."""
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        payload = self.build_message(to_user, content)
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.messages_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise RelayError(f"relay request failed: {e}") from e

        if resp.status_code not in _OK_STATUSES:
            raise RelayError(f"messaging API error ({resp.status_code}): {resp.text}")
        logger.debug("Relayed %d chars to %s", len(content), to_user)


def create_from_config(cfg: Dict[str, Any]) -> RelayClient:
    """Create a RelayClient from a config dict."""
    relay_cfg = ((cfg or {}).get("relay") or {}) if isinstance(cfg, dict) else {}
    agent_cfg = ((cfg or {}).get("agent") or {}) if isinstance(cfg, dict) else {}
    api_key = relay_cfg.get("api_key")
    if not api_key:
        raise RuntimeError("Missing messaging API key (relay.api_key / TELEX_API_KEY).")
    return RelayClient(
        str(api_key),
        base_url=str(relay_cfg.get("base_url") or DEFAULT_BASE_URL),
        agent_id=str(agent_cfg.get("id") or DEFAULT_AGENT_ID),
        timeout=float(relay_cfg.get("timeout", DEFAULT_TIMEOUT)),
    )
