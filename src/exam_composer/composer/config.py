"""
Module: composer.config

Purpose:
    Configuration dataclass for a composer session. Immutable
    configuration with validation on construction.

Key Classes:
    - ComposerSettings: Autosave timing, pagination and shuffle settings

Dependencies:
    - dataclasses (std)

Used By:
    - composer.sync.draft_sync: Debounce/heartbeat intervals
    - composer.controller: Page sizes, shuffle seed
    - gui.autosave: Tick interval
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, fields
from typing import Any, Mapping, Optional, Tuple

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ComposerSettings:
    """
    Settings for a composer session (immutable).

    Attributes:
        debounce_seconds: Quiet period after the last change before saving
        heartbeat_seconds: Unconditional save interval while there is content
        tick_interval_ms: How often the GUI timer drives DraftSync.tick()
        default_page_size: Initial items per page
        page_size_options: Allowed items-per-page values
        strict_versions: Reject stale saves with DraftConflict
        seed: Seed for the shuffle random source (None = OS entropy)

    Invariants:
        - debounce_seconds >= 0
        - heartbeat_seconds > 0
        - default_page_size in page_size_options

    Example:
        >>> ComposerSettings(debounce_seconds=2).heartbeat_seconds
        120.0
    """

    debounce_seconds: float = 5.0
    heartbeat_seconds: float = 120.0
    tick_interval_ms: int = 1000
    default_page_size: int = 10
    page_size_options: Tuple[int, ...] = (5, 10, 20, 50)
    strict_versions: bool = False
    seed: Optional[int] = None

    def __post_init__(self) -> None:
        """Validate configuration on construction."""
        if self.debounce_seconds < 0:
            raise ValueError(f"debounce_seconds must be non-negative: {self.debounce_seconds}")
        if self.heartbeat_seconds <= 0:
            raise ValueError(f"heartbeat_seconds must be positive: {self.heartbeat_seconds}")
        if self.tick_interval_ms <= 0:
            raise ValueError(f"tick_interval_ms must be positive: {self.tick_interval_ms}")
        if not isinstance(self.page_size_options, tuple):
            object.__setattr__(self, "page_size_options", tuple(self.page_size_options))
        if any(size <= 0 for size in self.page_size_options):
            raise ValueError(f"page sizes must be positive: {self.page_size_options}")
        if self.default_page_size not in self.page_size_options:
            raise ValueError(
                f"default_page_size ({self.default_page_size}) must be one of "
                f"{self.page_size_options}"
            )

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ComposerSettings:
        """
        Build settings from a loosely-typed mapping.

        Unknown keys are ignored and missing keys keep their defaults.
        Malformed data falls back to defaults entirely.
        """
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        if "page_size_options" in values:
            values["page_size_options"] = tuple(values["page_size_options"])
        try:
            return cls(**values)
        except (TypeError, ValueError) as e:
            logger.warning(f"Invalid composer settings, using defaults: {e}")
            return cls()
