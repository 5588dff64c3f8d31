"""Similarity ranking used by the reconciliation view.

- keyword_categories: keyword rule table and category detection
- matcher: scoring and ordering of orphan-sale candidates
"""

from flipledger.matching.keyword_categories import KeywordRuleLayers, build_keyword_rule_layers, detect_category
from flipledger.matching.matcher import (
    MatchConfig,
    MatchResult,
    purchase_candidates,
    rank_sale_candidates,
    sale_candidates,
    score_pair,
    search_records,
    tokenize,
)

__all__ = [
    "KeywordRuleLayers",
    "build_keyword_rule_layers",
    "detect_category",
    "MatchConfig",
    "MatchResult",
    "score_pair",
    "rank_sale_candidates",
    "purchase_candidates",
    "sale_candidates",
    "search_records",
    "tokenize",
]
