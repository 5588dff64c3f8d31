"""Runtime infrastructure for flipledger.

This package provides process/runtime services including:
- Logging setup via get_logger()
- Path resolution via get_paths(), ProjectPaths
- Keyword rule loading via load_keyword_rule_layers()
- The record store and its JSON snapshot persistence
- HTTP clients for the AI collaborators

Usage:
    from flipledger.runtime import get_logger, get_paths, RecordStore

    logger = get_logger(__name__)
    paths = get_paths()
    print(paths.root, paths.snapshot)
"""

from flipledger.runtime.ai_service import AIServiceClient, AIServiceError
from flipledger.runtime.keyword_rules import load_keyword_rule_layers
from flipledger.runtime.logging import (
    DEFAULT_LOG_LEVEL,
    LOG_FORMAT,
    LOG_FORMAT_DEBUG,
    configure_logging,
    get_logger,
    set_log_level,
)
from flipledger.runtime.paths import ProjectPaths, get_paths, set_data_root
from flipledger.runtime.snapshot_storage import JsonSnapshotStorage
from flipledger.runtime.store import RecordStore

__all__ = [
    # Logging
    "get_logger",
    "configure_logging",
    "set_log_level",
    "DEFAULT_LOG_LEVEL",
    "LOG_FORMAT",
    "LOG_FORMAT_DEBUG",
    # Rules
    "load_keyword_rule_layers",
    # Paths
    "get_paths",
    "set_data_root",
    "ProjectPaths",
    # Storage
    "JsonSnapshotStorage",
    "RecordStore",
    # Services
    "AIServiceClient",
    "AIServiceError",
]
