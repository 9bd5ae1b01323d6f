"""HTTP client for an OpenAI-compatible chat-completion API."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx


# -----------------------------
# Types & defaults
# -----------------------------

DEFAULT_API_URL = "https://api.groq.com/openai/v1/chat/completions"
DEFAULT_MODEL = "llama-3.3-70b-versatile"
DEFAULT_TIMEOUT = 30.0

FALLBACK_REPLY = (
    "I apologize, but I'm having trouble processing your message right now. "
    "Please try again."
)


class CompletionError(RuntimeError):
    """The completion API could not produce a reply."""


@dataclass
class GenerationConfig:
    model: str = DEFAULT_MODEL
    temperature: float = 0.7
    max_tokens: int = 1024


# -----------------------------
# Client
# -----------------------------

class CompletionClient:
    """Sends a single-turn prompt to the completion endpoint."""

    def __init__(
        self,
        api_key: str,
        *,
        api_url: str = DEFAULT_API_URL,
        generation: Optional[GenerationConfig] = None,
        timeout: float = DEFAULT_TIMEOUT,
        transport: Optional[httpx.BaseTransport] = None,
    ) -> None:
        """
        Parameters
        ----------
        api_key : str
            Bearer token for the completion API.
        api_url : str
            Full URL of the chat-completions endpoint.
        generation : GenerationConfig | None
            Model id and sampling settings; defaults match the hosted
            Llama 3.3 70B setup.
        timeout : float
            Whole-request timeout in seconds.
        transport : httpx.BaseTransport | None
            Optional transport override (e.g. ``httpx.MockTransport`` in tests).
        """
        self.api_key = api_key
        self.api_url = api_url
        self.generation = generation or GenerationConfig()
        self.timeout = float(timeout)
        self._transport = transport

    @property
    def model(self) -> str:
        return self.generation.model

    def complete(self, prompt: str) -> str:
        """Return the first choice's text for ``prompt``.

        Raises
        ------
        CompletionError
            On transport errors, timeouts, non-200 responses, undecodable
            bodies, an empty ``choices`` list or a malformed choice.
        """
        body = self._build_body(prompt)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        try:
            with httpx.Client(timeout=self.timeout, transport=self._transport) as client:
                resp = client.post(self.api_url, json=body, headers=headers)
        except httpx.HTTPError as e:
            raise CompletionError(f"completion request failed: {e}") from e

        if resp.status_code != 200:
            raise CompletionError(f"completion API error ({resp.status_code}): {resp.text}")

        try:
            data = resp.json()
        except ValueError as e:
            raise CompletionError(f"completion API returned invalid JSON: {e}") from e

        choices = data.get("choices") if isinstance(data, dict) else None
        if not choices:
            raise CompletionError("empty response from completion API")

        first = choices[0] if isinstance(choices, list) else None
        message = first.get("message") if isinstance(first, dict) else None
        if not isinstance(message, dict):
            raise CompletionError("unexpected completion response shape")
        return str(message.get("content") or "")

    # -------------------------
    # Internals
    # -------------------------
    def _build_body(self, prompt: str) -> Dict[str, Any]:
        gen = self.generation
        return {
            "model": gen.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": gen.temperature,
            "max_tokens": gen.max_tokens,
        }


# -----------------------------
# Convenience factory
# -----------------------------

def create_from_config(cfg: Dict[str, Any]) -> CompletionClient:
    """Create a CompletionClient from a config dict (e.g., loaded YAML)."""
    comp_cfg = ((cfg or {}).get("completion") or {}) if isinstance(cfg, dict) else {}
    api_key = comp_cfg.get("api_key")
    if not api_key:
        raise RuntimeError("Missing completion API key (completion.api_key / GROQ_API_KEY).")

    generation = GenerationConfig(
        model=str(comp_cfg.get("model") or DEFAULT_MODEL),
        temperature=float(comp_cfg.get("temperature", 0.7)),
        max_tokens=int(comp_cfg.get("max_tokens", 1024)),
    )
    return CompletionClient(
        str(api_key),
        api_url=str(comp_cfg.get("api_url") or DEFAULT_API_URL),
        generation=generation,
        timeout=float(comp_cfg.get("timeout", DEFAULT_TIMEOUT)),
    )
