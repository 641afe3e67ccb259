"""
Heuristic spam detection for contact form text.

This is a coarse pattern filter, not a classifier: it has known false
positives (a Spanish "contacto:" contains "to:") and is meant to be tuned
by editing ``DEFAULT_RULES``. Any matching rule marks the text as spam.
"""
from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Callable, Optional, Sequence

SPAM_KEYWORDS = ("viagra", "casino", "lottery", "winner", "congratulations")
MAX_LINKS = 2
MAX_CHAR_RUN = 10


@dataclass(frozen=True)
class SpamRule:
    name: str
    matches: Callable[[str], bool]


def _pattern(regex: str) -> Callable[[str], bool]:
    compiled = re.compile(regex, re.IGNORECASE)
    return lambda text: compiled.search(text) is not None


def _too_many_links(text: str) -> bool:
    return text.lower().count("http") > MAX_LINKS


DEFAULT_RULES: tuple[SpamRule, ...] = (
    SpamRule("keyword", _pattern(r"\b(" + "|".join(SPAM_KEYWORDS) + r")\b")),
    SpamRule("header_injection", _pattern(r"(bcc:|cc:|to:)")),
    SpamRule("script_injection", _pattern(r"<script|javascript:|onclick")),
    SpamRule("link_stuffing", _too_many_links),
    SpamRule("repeated_characters", _pattern(r"(.)\1{%d,}" % MAX_CHAR_RUN)),
)


class SpamFilter:
    def __init__(self, rules: Sequence[SpamRule] = DEFAULT_RULES) -> None:
        self.rules = tuple(rules)

    def first_match(self, text: str) -> Optional[str]:
        """Name of the first rule the text trips, or None."""
        for rule in self.rules:
            if rule.matches(text):
                return rule.name
        return None

    def is_spam(self, text: str) -> bool:
        return self.first_match(text) is not None


default_spam_filter = SpamFilter()


def is_spam(text: str) -> bool:
    return default_spam_filter.is_spam(text)
