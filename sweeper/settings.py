"""Setting value types shared by filters and operations."""

import re
from datetime import timedelta
from typing import Dict, Iterable, Iterator, List, Tuple

KEY_VALUES_SEPARATOR = ":"
VALUES_SEPARATOR = ","

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([a-zA-Z])\s*$")

# Days per unit; a month counts as 31 days
_UNIT_DAYS = {"d": 1, "w": 7, "m": 31, "y": 365}
_UNIT_NAMES = {"d": "day", "w": "week", "m": "month", "y": "year"}


class ExtDuration:
    """Duration with day-or-longer units: ``<n>d``, ``<n>w``, ``<n>m``, ``<n>y``."""

    def __init__(self, quantity: int, unit: str) -> None:
        unit = unit.lower()
        if unit not in _UNIT_DAYS:
            raise ValueError(f"invalid unit {unit!r} for duration")
        self.quantity = quantity
        self.unit = unit

    @classmethod
    def parse(cls, value: str) -> "ExtDuration":
        """Parse ``"6m"``, ``"2w"``...; raises ValueError on anything else."""
        match = _DURATION_RE.match(value or "")
        if not match:
            raise ValueError(f"invalid value {value!r} for duration")
        return cls(int(match.group(1)), match.group(2))

    def to_timedelta(self) -> timedelta:
        return timedelta(days=self.quantity * _UNIT_DAYS[self.unit])

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ExtDuration):
            return NotImplemented
        return self.to_timedelta() == other.to_timedelta()

    def __hash__(self) -> int:
        return hash(self.to_timedelta())

    def __str__(self) -> str:
        name = _UNIT_NAMES[self.unit]
        return f"{self.quantity} {name}" + ("" if self.quantity == 1 else "s")

    def __repr__(self) -> str:
        return f"ExtDuration({self.quantity}{self.unit})"


class MultiValuedKeys:
    """Mapping where each key holds several values.

    On the command line: repeated ``key:val1,val2`` items.
    In configuration files: ``{key: [val1, val2]}`` (a plain string value
    is split on commas).
    """

    def __init__(self, values: Dict[str, List[str]] | None = None) -> None:
        self._values: Dict[str, List[str]] = dict(values or {})

    @classmethod
    def from_items(cls, items: Iterable[str]) -> "MultiValuedKeys":
        """Parse CLI items; raises ValueError when an item lacks ``key:``."""
        values: Dict[str, List[str]] = {}
        for item in items:
            key, sep, rest = item.partition(KEY_VALUES_SEPARATOR)
            if not sep or not key:
                raise ValueError(f"invalid item format {item!r} (expected `key:values`)")
            values[key] = rest.split(VALUES_SEPARATOR)
        return cls(values)

    @classmethod
    def from_config(cls, raw: Dict[str, object] | None) -> "MultiValuedKeys":
        """Parse a configuration mapping of lists (or comma-separated strings)."""
        values: Dict[str, List[str]] = {}
        for key, value in (raw or {}).items():
            if isinstance(value, str):
                values[str(key)] = value.split(VALUES_SEPARATOR)
            elif isinstance(value, list) and all(isinstance(v, str) for v in value):
                values[str(key)] = list(value)
            else:
                raise ValueError(f"invalid values {value!r} for key {key!r}")
        return cls(values)

    def items(self) -> Iterator[Tuple[str, List[str]]]:
        return iter(self._values.items())

    def pairs(self) -> Iterator[Tuple[str, str]]:
        """Yield every (key, value) pair."""
        for key, values in self._values.items():
            for value in values:
                yield key, value

    def keys(self) -> List[str]:
        return list(self._values)

    def get(self, key: str) -> List[str]:
        return list(self._values.get(key, []))

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, MultiValuedKeys):
            return NotImplemented
        return self._values == other._values

    def __repr__(self) -> str:
        return f"MultiValuedKeys({self._values!r})"
