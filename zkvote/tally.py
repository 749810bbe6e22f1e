# Copyright (C) 2025 Logical Mechanism LLC
# SPDX-License-Identifier: GPL-3.0-only
from zkvote.constants import FIRST_OPTION
from zkvote.errors import InvalidOption


class TallyLedger:
    """
    Per-option vote counters.

    Counters start at zero for every option in [1, options_count] and only
    ever go up. The election owns its ledger and is the only caller of
    `increment`.
    """

    def __init__(self, options_count: int):
        if (
            isinstance(options_count, bool)
            or not isinstance(options_count, int)
            or options_count < 1
        ):
            raise ValueError(f"options_count must be a positive int, got {options_count!r}")
        self.options_count = options_count
        self._counts = {option: 0 for option in self.options}

    @property
    def options(self) -> range:
        return range(FIRST_OPTION, FIRST_OPTION + self.options_count)

    def is_valid_option(self, option: int) -> bool:
        return isinstance(option, int) and not isinstance(option, bool) and option in self.options

    def require_option(self, option: int) -> int:
        if not self.is_valid_option(option):
            raise InvalidOption(
                f"option {option!r} outside [{FIRST_OPTION}, {FIRST_OPTION + self.options_count - 1}]"
            )
        return option

    def increment(self, option: int) -> int:
        self.require_option(option)
        self._counts[option] += 1
        return self._counts[option]

    def count(self, option: int) -> int:
        return self._counts[self.require_option(option)]

    @property
    def total(self) -> int:
        return sum(self._counts.values())

    def snapshot(self) -> dict[int, int]:
        return dict(self._counts)

    def __repr__(self) -> str:
        return f"TallyLedger({self._counts})"
