"""Runtime configuration from environment variables and YAML files.

- ``FEEDGUARD_DATA_DIR``       -- directory of the JSON file store
- ``FEEDGUARD_SETTINGS_FILE``  -- YAML settings merged over the defaults
- ``FEEDGUARD_PATTERNS_FILE``  -- replacement detection tables
- ``FEEDGUARD_LOG_LEVEL``      -- logging level name (default ``WARNING``)
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Optional

from rich.logging import RichHandler

from feedguard.analysis.analyzer import ContentAnalyzer
from feedguard.analysis.patterns import load_pattern_tables
from feedguard.moderation.service import ModerationService
from feedguard.moderation.settings import DEFAULT_SETTINGS, load_settings
from feedguard.moderation.store import JsonFileStore

DATA_DIR_ENV = "FEEDGUARD_DATA_DIR"
SETTINGS_FILE_ENV = "FEEDGUARD_SETTINGS_FILE"
LOG_LEVEL_ENV = "FEEDGUARD_LOG_LEVEL"


def data_dir() -> Path:
    configured = os.environ.get(DATA_DIR_ENV)
    return Path(configured) if configured else Path.home() / ".feedguard" / "moderation"


def configure_logging(level: Optional[str] = None) -> None:
    """Route ``feedguard`` loggers through rich. Safe to call more than once."""
    level_name = (level or os.environ.get(LOG_LEVEL_ENV) or "WARNING").upper()
    logger = logging.getLogger("feedguard")
    logger.setLevel(level_name)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        logger.addHandler(RichHandler(show_path=False, rich_tracebacks=True))


def local_settings_path(base_dir: str | Path | None = None) -> Path:
    """Settings saved by ``feedguard settings set`` live beside the store."""
    return Path(base_dir or data_dir()) / "settings.yaml"


def build_service(base_dir: str | Path | None = None) -> ModerationService:
    """Construct a file-backed service from the environment.

    Settings are layered: defaults, then ``$FEEDGUARD_SETTINGS_FILE``, then
    the locally saved ``settings.yaml``.
    """
    base = Path(base_dir or data_dir())
    settings = DEFAULT_SETTINGS
    settings_file = os.environ.get(SETTINGS_FILE_ENV)
    if settings_file:
        settings = load_settings(settings_file, settings)
    local = local_settings_path(base)
    if local.exists():
        settings = load_settings(local, settings)

    return ModerationService(
        store=JsonFileStore(base),
        settings=settings,
        analyzer=ContentAnalyzer(load_pattern_tables()),
    )
