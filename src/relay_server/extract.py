"""Keyword-based intent, entity and topic annotation for inbound messages."""
from __future__ import annotations

from typing import Dict, List, Tuple

# -----------------------------
# Labels & keyword tables
# -----------------------------
HELP_REQUEST = "help_request"
QUESTION = "question"
GRATITUDE = "gratitude"
GREETING = "greeting"
GENERAL = "general"

# (substrings, label) in priority order; first hit wins.
INTENT_RULES: Tuple[Tuple[Tuple[str, ...], str], ...] = (
    (("help", "assist"), HELP_REQUEST),
    (("?",), QUESTION),
    (("thank",), GRATITUDE),
    (("hello", "hi"), GREETING),
)

# Ordered so multi-topic messages tag deterministically.
TOPIC_KEYWORDS: Tuple[Tuple[str, str], ...] = (
    ("code", "programming"),
    ("python", "programming"),
    ("go", "programming"),
    ("weather", "weather"),
    ("help", "support"),
    ("how", "tutorial"),
)

ENTITY_PREFIXES: Tuple[Tuple[str, str], ...] = (
    ("@", "mention"),
    ("#", "hashtag"),
)


def classify_intent(text: str) -> str:
    """Return a coarse intent label for ``text``."""
    lower = (text or "").lower()
    for needles, label in INTENT_RULES:
        if any(n in lower for n in needles):
            return label
    return GENERAL


def extract_entities(text: str) -> Dict[str, str]:
    """Map entity kind to the last matching token (``@user`` / ``#tag``)."""
    entities: Dict[str, str] = {}
    for word in (text or "").lower().split():
        for prefix, kind in ENTITY_PREFIXES:
            if word.startswith(prefix):
                entities[kind] = word
    return entities


def extract_topics(text: str) -> List[str]:
    lower = (text or "").lower()
    topics: List[str] = []
    for keyword, topic in TOPIC_KEYWORDS:
        if keyword in lower and topic not in topics:
            topics.append(topic)
    return topics
