# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
import logging
import os
from dataclasses import dataclass, field, fields
from enum import Enum
from pathlib import Path
from typing import Any

from zkvote.errors import ConfigurationError
from zkvote.files import load_json

ENV_OVERRIDES = {
    "ZKVOTE_ARTIFACTS_DIR": "artifacts_dir",
    "ZKVOTE_SNARKJS": "snarkjs_bin",
    "ZKVOTE_NODE": "node_bin",
    "ZKVOTE_LOG_LEVEL": "log_level",
}


class Variant(str, Enum):
    """Which cast operation an election uses."""

    # hidden vote in Voting, opened by a second proof in Revealing
    COMMIT_REVEAL = "commit_reveal"
    # option public at cast time, voting closes at a deadline
    OPEN = "open"


@dataclass
class ElectionConfig:
    admin: str
    options_count: int
    variant: Variant = Variant.COMMIT_REVEAL
    voting_duration: int | None = None
    artifacts_dir: Path = field(default_factory=lambda: Path("circuits"))
    snarkjs_bin: str = "snarkjs"
    node_bin: str = "node"
    node_path: str | None = None
    log_level: str = "INFO"

    def __post_init__(self):
        self.artifacts_dir = Path(self.artifacts_dir)
        try:
            self.variant = Variant(self.variant)
        except ValueError as e:
            raise ConfigurationError(f"unknown election variant: {self.variant!r}") from e

        if not self.admin:
            raise ConfigurationError("an administrator must be configured")
        if (
            not isinstance(self.options_count, int)
            or isinstance(self.options_count, bool)
            or self.options_count < 1
        ):
            raise ConfigurationError(
                f"options_count must be a positive int, got {self.options_count!r}"
            )
        if self.variant is Variant.OPEN:
            duration = self.voting_duration
            if not isinstance(duration, int) or isinstance(duration, bool) or duration <= 0:
                raise ConfigurationError(
                    "the open variant needs a positive voting_duration in seconds"
                )
        log_level_number(self.log_level)


def load_config(path: str | Path | None = None, **overrides: Any) -> ElectionConfig:
    """
    Build an election configuration.

    Values are layered: the JSON file (if given), then `ZKVOTE_*` environment
    variables, then keyword overrides.

    Args:
        path: Optional JSON file whose keys are `ElectionConfig` field names.
        **overrides: Field values that win over everything else.

    Returns:
        ElectionConfig

    Raises:
        ConfigurationError: On unknown keys or invalid values.
        FileNotFoundError: If `path` is given but does not exist.
    """
    data: dict[str, Any] = {}
    if path is not None:
        loaded = load_json(path)
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"{path}: configuration must be a JSON object")
        data.update(loaded)

    for var, key in ENV_OVERRIDES.items():
        if var in os.environ:
            data[key] = os.environ[var]

    data.update(overrides)

    known = {f.name for f in fields(ElectionConfig)}
    unknown = sorted(set(data) - known)
    if unknown:
        raise ConfigurationError(f"unknown configuration keys: {', '.join(unknown)}")

    try:
        return ElectionConfig(**data)
    except TypeError as e:
        raise ConfigurationError(str(e)) from e


def log_level_number(level: str) -> int:
    """
    Map a level name such as "info" or "DEBUG" to its logging constant.

    Raises:
        ConfigurationError: If `level` is not a logging level name.
    """
    number = getattr(logging, str(level).upper(), None)
    if not isinstance(number, int):
        raise ConfigurationError(f"unknown log level: {level}")
    return number


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Configure root logging with a single stream handler."""
    number = log_level_number(level)
    root = logging.getLogger()
    for handler in root.handlers[:]:
        root.removeHandler(handler)

    logging.basicConfig(
        level=number,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger = logging.getLogger("zkvote")
    logger.debug("logging initialized at %s", level.upper())
    return logger
