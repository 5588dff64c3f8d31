"""Shared pytest fixtures for flipledger tests."""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest

from flipledger.matching.keyword_categories import KeywordRuleLayers
from flipledger.runtime import paths as paths_module
from flipledger.runtime.keyword_rules import load_keyword_rule_layers
from flipledger.runtime.paths import set_data_root


@pytest.fixture(autouse=True)
def isolated_data_root(tmp_path: Path) -> Iterator[Path]:
    """Point the paths singleton at a temporary directory for every test."""
    previous = paths_module._paths
    root = tmp_path / "flipledger-home"
    set_data_root(root)
    load_keyword_rule_layers.cache_clear()
    yield root
    paths_module._paths = previous
    load_keyword_rule_layers.cache_clear()


@pytest.fixture
def bundled_rules() -> KeywordRuleLayers:
    """Only the keyword rules shipped with the package."""
    path = Path(__file__).resolve().parents[1] / "matching" / "rules" / "default_keyword_categories.toml"
    return load_keyword_rule_layers((str(path),))
