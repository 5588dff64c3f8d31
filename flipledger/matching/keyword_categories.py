"""Keyword-based category detection for item names.

Maps a free-text listing title (e.g. "iPhone 13 Pro 256G") to a fine-grained
category using keyword rules. When several categories match, weighted scoring
picks one: higher rule priority first, then longer keywords, then keywords
appearing later in the name.

Rules are data: the defaults live in rules/default_keyword_categories.toml and
users can layer their own file on top (see flipledger.runtime.keyword_rules).
Keywords are case-insensitive.
"""

import re
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

PRIORITY_SCORE_MULTIPLIER = 10000

# Keywords this short (pure ASCII) only match as whole words, so "pro" does
# not fire inside "product".
SHORT_KEYWORD_MAX_LEN = 3

# Built-in rules are intentionally empty; see default_keyword_categories.toml.
KEYWORD_RULES: list[tuple[tuple[str, ...], str]] = []


RuleEntry = tuple[tuple[str, ...], str, int]


@dataclass(frozen=True)
class KeywordRuleLayers:
    """In-memory keyword rules, merged from every configured layer."""

    rules: tuple[RuleEntry, ...]

    @property
    def categories(self) -> frozenset[str]:
        return frozenset(category for _, category, _ in self.rules)


def _normalize_keywords(raw: Any) -> tuple[str, ...]:
    """Normalize keywords value from TOML into a tuple of lower-case strings."""
    if isinstance(raw, str):
        value = raw.strip().lower()
        return (value,) if value else tuple()
    if isinstance(raw, list):
        return tuple(str(v).strip().lower() for v in raw if str(v).strip())
    return tuple()


def build_keyword_rule_layers(configs: Sequence[Mapping[str, Any]] | None = None) -> KeywordRuleLayers:
    """Merge built-in rules with parsed TOML configs.

    Each successive config layer gets a higher base priority, so a user file
    loaded after the bundled defaults wins ties.
    """
    rules: list[RuleEntry] = []
    for keywords, category in KEYWORD_RULES:
        rules.append((tuple(kw.lower() for kw in keywords), category, 0))

    for idx, config in enumerate(configs or (), start=1):
        layer_priority = idx * 100
        for rule in config.get("rules", []):
            if not isinstance(rule, Mapping):
                continue

            keywords = _normalize_keywords(rule.get("keywords"))
            if not keywords:
                continue

            category = str(rule.get("category") or rule.get("tag") or "").strip()
            if not category:
                continue

            priority = int(rule.get("priority", 0)) + layer_priority
            rules.append((keywords, category, priority))

    return KeywordRuleLayers(rules=tuple(rules))


@lru_cache(maxsize=1)
def _get_default_rule_layers() -> KeywordRuleLayers:
    """Built-in-only rules (no file I/O)."""
    return build_keyword_rule_layers()


def _is_short_ascii(keyword: str) -> bool:
    return len(keyword) <= SHORT_KEYWORD_MAX_LEN and keyword.isascii()


def keyword_position(keyword: str, name: str) -> int:
    """Position of ``keyword`` in lower-cased ``name``, or -1 when absent."""
    if not keyword:
        return -1
    if _is_short_ascii(keyword):
        # ASCII-only boundaries: CJK characters next to the keyword still count as a boundary.
        match = re.search(r"(?<![a-z0-9])" + re.escape(keyword) + r"(?![a-z0-9])", name)
        return match.start() if match else -1
    return name.find(keyword)


def _find_all_matches(name: str, rules: Sequence[RuleEntry]) -> list[tuple[int, str, str, int]]:
    """Return (score, category, matched_keyword, position) for every matching rule."""
    text = name.lower()
    matches = []
    for keywords, category, priority in rules:
        best: tuple[int, str, int] | None = None
        for kw in keywords:
            position = keyword_position(kw, text)
            if position == -1:
                continue
            score = len(kw) * 10 + position + priority * PRIORITY_SCORE_MULTIPLIER
            if best is None or score > best[0]:
                best = (score, kw, position)
        if best is not None:
            matches.append((best[0], category, best[1], best[2]))
    return matches


def detect_category(
    name: str,
    default: str | None = None,
    rule_layers: KeywordRuleLayers | None = None,
) -> str | None:
    """Return the best matching keyword category for an item name.

    Args:
        name: Item name, any case (e.g. "Nike Air Force 1 运动鞋")
        default: Returned when no rule matches
        rule_layers: Preloaded rules (typically from the runtime loader).
            When omitted only built-in rules apply.
    """
    layers = rule_layers or _get_default_rule_layers()
    matches = _find_all_matches(name, layers.rules)
    if not matches:
        return default
    matches.sort(key=lambda m: m[0], reverse=True)
    return matches[0][1]


def detect_category_debug(
    name: str,
    rule_layers: KeywordRuleLayers | None = None,
) -> list[tuple[str, str, int]]:
    """All matches as (category, keyword, score), best first."""
    layers = rule_layers or _get_default_rule_layers()
    matches = _find_all_matches(name, layers.rules)
    matches.sort(key=lambda m: m[0], reverse=True)
    return [(category, kw, score) for score, category, kw, _ in matches]
