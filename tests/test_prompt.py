from __future__ import annotations

from relay_server.memory import ConversationContext, ConversationStore
from relay_server.prompt import DEFAULT_PREAMBLE, build_prompt


def test_prompt_with_context():
    ctx = ConversationContext(user_id="u", message_count=3, topics=["programming", "support"])
    prompt = build_prompt(ctx, "next question")
    assert prompt.startswith(DEFAULT_PREAMBLE)
    assert "message #3" in prompt
    assert "programming, support" in prompt
    assert prompt.endswith("\n\nnext question")


def test_prompt_without_context_or_topics():
    bare = build_prompt(None, "hello")
    assert "message #" not in bare
    assert "Previous topics" not in bare
    assert bare.endswith("Respond naturally and helpfully to the following message:\n\nhello")

    no_topics = build_prompt(ConversationContext(user_id="u", message_count=1), "hey")
    assert "message #1" in no_topics
    assert "Previous topics" not in no_topics


def test_prompt_counts_current_message():
    store = ConversationStore()
    ctx = store.update("u", "tell me about python")
    prompt = build_prompt(ctx, "tell me about python")
    assert "message #1" in prompt
    assert "Previous topics discussed: programming." in prompt


def test_custom_preamble():
    prompt = build_prompt(None, "hi", preamble="You are terse.")
    assert prompt.startswith("You are terse. Respond")


def test_prompt_skips_turn_note_before_first_message():
    prompt = build_prompt(ConversationContext(user_id="u"), "x")
    assert "message #" not in prompt
    assert "Previous topics" not in prompt
    assert prompt.endswith("\n\nx")
