"""Rank orphan sales against an inventory record for manual reconciliation.

Supports two orderings:
- No anchor: candidates newest first (sale date, else acquisition date)
- Anchor selected: additive similarity score, highest first
"""

import re
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from flipledger.domain.lifecycle import LifecycleState, classify
from flipledger.domain.record import Record
from flipledger.matching.keyword_categories import KeywordRuleLayers, detect_category

_ASCII_WORD_RE = re.compile(r"[a-z0-9]+")
_CJK_RE = re.compile(r"[\u3400-\u4dbf\u4e00-\u9fff\uf900-\ufaff]")


@dataclass
class MatchResult:
    """Result of scoring one sale candidate against the anchor."""

    record: Record
    score: int  # may be negative
    match_details: str  # Human-readable explanation


@dataclass
class MatchConfig:
    """Weights for the similarity score."""

    tag_match_bonus: int = 80
    tag_mismatch_penalty: int = 50
    keyword_match_bonus: int = 40
    keyword_mismatch_penalty: int = 20
    containment_bonus: int = 30
    shared_token_bonus: int = 10


def tokenize(name: str) -> set[str]:
    """Split a name into ASCII alphanumeric words and single CJK ideographs."""
    text = name.lower()
    return set(_ASCII_WORD_RE.findall(text)) | set(_CJK_RE.findall(text))


def score_pair(
    anchor: Record,
    candidate: Record,
    config: MatchConfig | None = None,
    rule_layers: KeywordRuleLayers | None = None,
) -> MatchResult:
    """Score how likely ``candidate`` is the sale of ``anchor``."""
    if config is None:
        config = MatchConfig()

    score = 0
    details = []
    anchor_name = anchor.name.strip().lower()
    candidate_name = candidate.name.strip().lower()

    # Smart tags from the classifier outrank everything else
    if anchor.smart_tag and candidate.smart_tag:
        if anchor.smart_tag == candidate.smart_tag:
            score += config.tag_match_bonus
            details.append(f"tag: {anchor.smart_tag}")
        else:
            score -= config.tag_mismatch_penalty
            details.append(f"tag: {anchor.smart_tag} vs {candidate.smart_tag}")

    anchor_category = detect_category(anchor_name, rule_layers=rule_layers)
    candidate_category = detect_category(candidate_name, rule_layers=rule_layers)
    if anchor_category and candidate_category:
        if anchor_category == candidate_category:
            score += config.keyword_match_bonus
            details.append(f"keywords: {anchor_category}")
        else:
            score -= config.keyword_mismatch_penalty
            details.append(f"keywords: {anchor_category} vs {candidate_category}")

    if anchor_name and candidate_name and (anchor_name in candidate_name or candidate_name in anchor_name):
        score += config.containment_bonus
        details.append("name: contained")

    shared = tokenize(anchor_name) & tokenize(candidate_name)
    if shared:
        score += config.shared_token_bonus * len(shared)
        details.append(f"tokens: {len(shared)} shared")

    return MatchResult(
        record=candidate,
        score=score,
        match_details=", ".join(details) if details else "no similarity",
    )


def _by_recency(records: Iterable[Record]) -> list[Record]:
    # sorted() is stable, so equal dates keep their original order
    return sorted(records, key=lambda r: r.effective_sale_date, reverse=True)


def rank_sale_candidates(
    anchor: Record | None,
    candidates: Sequence[Record],
    config: MatchConfig | None = None,
    rule_layers: KeywordRuleLayers | None = None,
) -> list[MatchResult]:
    """
    Order sale candidates for an anchor purchase.

    Args:
        anchor: Selected purchase record, or None for plain recency order
        candidates: Sale records to rank
        config: Scoring weights
        rule_layers: Keyword rules for the category term

    Returns:
        Candidates as MatchResults. With an anchor: score descending, ties
        broken by most recent sale date, then original order.
    """
    if anchor is None:
        return [MatchResult(record=r, score=0, match_details="recency") for r in _by_recency(candidates)]

    results = [score_pair(anchor, candidate, config, rule_layers) for candidate in candidates]
    results.sort(key=lambda m: (m.score, m.record.effective_sale_date.toordinal()), reverse=True)
    return results


def purchase_candidates(records: Iterable[Record]) -> list[Record]:
    """Records still waiting for a sale leg, newest acquisition first."""
    pending = [
        r for r in records if classify(r) in (LifecycleState.INVENTORY, LifecycleState.UNCLASSIFIED)
    ]
    return sorted(pending, key=lambda r: r.date, reverse=True)


def sale_candidates(records: Iterable[Record]) -> list[Record]:
    """Orphan sales, newest first."""
    return _by_recency(r for r in records if classify(r) is LifecycleState.ORPHAN_SALE)


def search_records(records: Iterable[Record], query: str | None) -> list[Record]:
    """Case-insensitive name filter; a blank query keeps everything."""
    needle = (query or "").strip().lower()
    if not needle:
        return list(records)
    return [r for r in records if needle in r.name.lower()]
