"""Runtime configuration model for Nimitz.

This module owns all environment variable parsing and validation.
Other modules consume a typed config object instead of raw env reads.
"""

from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path

from core.constants import (
    DEFAULT_DATA_ROOT,
    DEFAULT_SAVE_BATCH_SIZE,
    DEFAULT_SLOW_SAVE_SECONDS,
)
from core.errors import NimitzConfigError


@dataclass(frozen=True)
class NimitzConfig:
    """Validated runtime configuration.

    Attributes:
        data_root: Local root directory holding the ``dat`` warzone tree.
        save_batch_size: Rows inserted per batch during zone saves.
        slow_save_seconds: Elapsed time after which save progress is logged.
    """

    data_root: Path
    save_batch_size: int = DEFAULT_SAVE_BATCH_SIZE
    slow_save_seconds: float = DEFAULT_SLOW_SAVE_SECONDS

    @classmethod
    def from_env(cls) -> "NimitzConfig":
        """Build config from process environment variables.

        Returns:
            A validated config object.

        Raises:
            NimitzConfigError: If environment values are invalid.
        """
        data_root_value = os.getenv("NIMITZ_DATA_ROOT", str(DEFAULT_DATA_ROOT))
        batch_size_value = os.getenv("NIMITZ_SAVE_BATCH_SIZE", str(DEFAULT_SAVE_BATCH_SIZE))
        slow_save_value = os.getenv("NIMITZ_SLOW_SAVE_SECONDS", str(DEFAULT_SLOW_SAVE_SECONDS))
        return cls(
            data_root=Path(data_root_value).expanduser().resolve(),
            save_batch_size=_parse_batch_size(batch_size_value),
            slow_save_seconds=_parse_slow_save_seconds(slow_save_value),
        )


def _parse_batch_size(raw_value: str) -> int:
    """Parse the save batch size environment value.

    Args:
        raw_value: Raw string from environment.

    Returns:
        Parsed positive batch size.

    Raises:
        NimitzConfigError: If value is not a positive integer.
    """
    try:
        batch_size = int(raw_value)
    except ValueError as error:
        raise NimitzConfigError(
            "Invalid NIMITZ_SAVE_BATCH_SIZE value: "
            f"expected integer, got '{raw_value}'. "
            "Set NIMITZ_SAVE_BATCH_SIZE to a positive number."
        ) from error
    if batch_size <= 0:
        raise NimitzConfigError(
            f"Invalid NIMITZ_SAVE_BATCH_SIZE value: {batch_size}. "
            "Batch size must be at least 1."
        )
    return batch_size


def _parse_slow_save_seconds(raw_value: str) -> float:
    """Parse the slow-save threshold environment value."""
    try:
        seconds = float(raw_value)
    except ValueError as error:
        raise NimitzConfigError(
            "Invalid NIMITZ_SLOW_SAVE_SECONDS value: "
            f"expected number, got '{raw_value}'. "
            "Set NIMITZ_SLOW_SAVE_SECONDS to a non-negative number of seconds."
        ) from error
    if seconds < 0:
        raise NimitzConfigError(
            f"Invalid NIMITZ_SLOW_SAVE_SECONDS value: {seconds}. "
            "The threshold cannot be negative."
        )
    return seconds
