"""Context-aware prompt composition."""
from __future__ import annotations

from typing import List, Optional

from .memory import ConversationContext

DEFAULT_PREAMBLE = "You are a helpful AI assistant integrated with Telex.im messaging platform."
INSTRUCTION = "Respond naturally and helpfully to the following message:"


def build_prompt(
    context: Optional[ConversationContext],
    message: str,
    *,
    preamble: str = DEFAULT_PREAMBLE,
) -> str:
    """Compose the completion prompt for ``message``.

    ``context`` is expected to already include the current message, so the
    turn number and topic list count it too.
    """
    parts: List[str] = [preamble.strip()]

    if context is not None and context.message_count > 0:
        parts.append(f"This is message #{context.message_count} in the conversation.")
        if context.topics:
            parts.append(f"Previous topics discussed: {', '.join(context.topics)}.")

    parts.append(INSTRUCTION)
    return " ".join(parts) + "\n\n" + message
