"""Runtime loader for keyword category rules."""

from __future__ import annotations

import tomllib
from functools import lru_cache
from pathlib import Path
from typing import Any

from flipledger.matching.keyword_categories import KeywordRuleLayers, build_keyword_rule_layers
from flipledger.runtime.paths import get_paths


def _load_toml(path: Path) -> dict[str, Any]:
    """Load TOML file and return parsed dict; missing files map to empty dict.

    Raises:
        ValueError: The file exists but is not valid TOML.
    """
    if not path.exists():
        return {}

    with open(path, "rb") as f:
        try:
            data = tomllib.load(f)
        except tomllib.TOMLDecodeError as exc:
            raise ValueError(f"Invalid keyword rules file {path}: {exc}") from exc
    return data if isinstance(data, dict) else {}


@lru_cache(maxsize=8)
def load_keyword_rule_layers(rule_paths: tuple[str, ...] | None = None) -> KeywordRuleLayers:
    """Load keyword rules from the bundled defaults and the user's file into pure in-memory layers."""
    if rule_paths is None:
        p = get_paths()
        seen_paths: set[Path] = set()
        rule_files: list[Path] = []
        for candidate in (p.default_keyword_rules, p.keyword_rules):
            resolved = candidate.resolve()
            if resolved in seen_paths:
                continue
            seen_paths.add(resolved)
            rule_files.append(candidate)
    else:
        rule_files = [Path(path) for path in rule_paths]

    return build_keyword_rule_layers(tuple(_load_toml(path) for path in rule_files))
