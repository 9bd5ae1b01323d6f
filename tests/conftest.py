"""Pytest configuration and shared fixtures."""
from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import List, Optional, Tuple

import pytest
import yaml

# Ensure src/ is on the import path (for local imports without installing as package)
SRC_PATH = Path(__file__).resolve().parent.parent / "src"
if str(SRC_PATH) not in sys.path:
    sys.path.insert(0, str(SRC_PATH))

from relay_server.llm import CompletionError  # noqa: E402
from relay_server.relay import RelayError  # noqa: E402

WEBHOOK_SECRET = "test_key_123"
AGENT_ID = "ai-agent-001"


@pytest.fixture(scope="session")
def project_root() -> Path:
    """Return the root directory of the project."""
    return Path(__file__).resolve().parent.parent


@pytest.fixture(scope="function")
def clean_env(monkeypatch: pytest.MonkeyPatch):
    """Ensure tests run with a clean environment (no leftover vars)."""
    for var in ["RELAY_SERVER_CONFIG", "GROQ_API_KEY", "TELEX_API_KEY", "TELEX_BASE_URL", "AGENT_ID"]:
        monkeypatch.delenv(var, raising=False)
    for var in list(os.environ):
        if var.startswith("RELAY_SERVER__"):
            monkeypatch.delenv(var, raising=False)
    yield


@pytest.fixture(scope="function")
def config_file(tmp_path: Path, clean_env) -> Path:
    """Write a minimal config with known keys and return its path."""
    content = {
        "agent": {"id": AGENT_ID, "name": "Test Agent"},
        "completion": {"api_key": "groq-test", "model": "test-model"},
        "relay": {"api_key": WEBHOOK_SECRET, "base_url": "http://telex.test/v1"},
        "memory": {"max_conversations": 100},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.safe_dump(content, sort_keys=False), encoding="utf-8")
    return path


class SpyCompletion:
    """Completion double that records prompts and returns a fixed reply."""

    model = "spy-model"

    def __init__(self, reply: str = "ok"):
        self.reply = reply
        self.prompts: List[str] = []

    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        return self.reply

    @property
    def last_prompt(self) -> Optional[str]:
        return self.prompts[-1] if self.prompts else None


class FailingCompletion(SpyCompletion):
    def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        raise CompletionError("completion API error (500): boom")


class SpyRelay:
    """Relay double recording (to_user, content) pairs."""

    api_key = WEBHOOK_SECRET

    def __init__(self, fail: bool = False):
        self.fail = fail
        self.sent: List[Tuple[str, str]] = []

    def send(self, to_user: str, content: str) -> None:
        if self.fail:
            raise RelayError("messaging API error (503): unavailable")
        self.sent.append((to_user, content))
