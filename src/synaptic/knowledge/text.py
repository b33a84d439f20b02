"""
Lexical helpers shared by context selection and contradiction detection.

Tokenisation is simple: lowercase, strip URLs, split on anything
that is not a letter, digit or apostrophe. This is the lexical fallback used
when nodes carry no embeddings.
"""

import re
from typing import FrozenSet, List

MIN_TERM_LENGTH = 3

STOP_WORDS = frozenset({
    "the", "and", "that", "this", "with", "from", "for", "are", "was", "were",
    "has", "have", "had", "but", "you", "your", "our", "its", "their", "they",
    "what", "which", "who", "how", "when", "where", "why", "about", "into",
    "than", "then", "there", "these", "those", "will", "would", "can", "could",
    "should", "does", "did", "been", "being", "also", "any", "all", "some",
})

NEGATIONS = frozenset({
    "not", "no", "never", "none", "nobody", "nothing", "neither", "nor",
    "cannot", "can't", "don't", "doesn't", "didn't", "isn't", "aren't",
    "wasn't", "weren't", "won't", "wouldn't", "shouldn't", "hasn't", "haven't",
})

ANTONYMS = (
    ("true", "false"),
    ("always", "never"),
    ("like", "dislike"),
    ("love", "hate"),
    ("likes", "dislikes"),
    ("loves", "hates"),
    ("allow", "forbid"),
    ("allowed", "forbidden"),
    ("enable", "disable"),
    ("enabled", "disabled"),
    ("accept", "reject"),
    ("accepted", "rejected"),
    ("increase", "decrease"),
    ("before", "after"),
    ("open", "closed"),
    ("active", "inactive"),
    ("available", "unavailable"),
    ("approved", "denied"),
    ("yes", "no"),
)

_URL = re.compile(r"https?://\S+")
_TOKEN = re.compile(r"[a-z0-9']+")


def tokenize(text: str) -> List[str]:
    """Lowercase word tokens of a text, URLs removed."""
    if not text:
        return []
    return _TOKEN.findall(_URL.sub(" ", text.lower()))


def terms(text: str) -> FrozenSet[str]:
    """Content terms: tokens of at least MIN_TERM_LENGTH chars that are not stop words or negations."""
    return frozenset(
        t for t in tokenize(text)
        if len(t) >= MIN_TERM_LENGTH and t not in STOP_WORDS and t not in NEGATIONS
    )


def is_negated(text: str) -> bool:
    """True when the text contains a negation word."""
    return any(t in NEGATIONS for t in tokenize(text))


def opposing_terms(text_a: str, text_b: str) -> List[str]:
    """
    Antonym pairs split across two texts.

    Returns:
        List of "x/y" strings for each pair where one text holds x and the
        other holds y (but not both).
    """
    tokens_a, tokens_b = set(tokenize(text_a)), set(tokenize(text_b))
    found = []
    for left, right in ANTONYMS:
        a_left, a_right = left in tokens_a, right in tokens_a
        b_left, b_right = left in tokens_b, right in tokens_b
        if (a_left and b_right and not a_right and not b_left) or \
                (a_right and b_left and not a_left and not b_right):
            found.append(f"{left}/{right}")
    return found
