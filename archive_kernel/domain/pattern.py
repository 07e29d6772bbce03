"""
Archive candidate naming convention.

A generated output file is an archive candidate when its base name starts
with exactly ``digit_count`` ASCII digits followed by a hyphen, e.g.
``2024010112-report.csv`` for a ten-digit deployment.  Nothing else about
the name is checked: no extension, no digit value.

ZERO I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

# Two deployments were seen in the wild: 7 and 10 digits.  10 is current.
DEFAULT_DIGIT_COUNT = 10


@dataclass(frozen=True)
class PatternMatcher:
    """Predicate over base file names.

    Pure and total: ``matches`` never raises for any ``str``.
    """

    digit_count: int = DEFAULT_DIGIT_COUNT
    _regex: re.Pattern[str] = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        if isinstance(self.digit_count, bool) or not isinstance(self.digit_count, int):
            raise ValueError(f"digit_count must be an int, got {self.digit_count!r}")
        if self.digit_count <= 0:
            raise ValueError(f"digit_count must be positive, got {self.digit_count}")
        # [0-9] rather than \d: only ASCII digits qualify.
        object.__setattr__(
            self, "_regex", re.compile(rf"[0-9]{{{self.digit_count}}}-"),
        )

    def matches(self, filename: str) -> bool:
        """True iff ``filename`` begins with exactly N ASCII digits and ``-``."""
        return self._regex.match(filename) is not None
