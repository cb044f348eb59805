"""Counter types for unsafe usage.

Two layers:
    - ``Count`` / ``CounterBlock``: raw per-file tallies produced by the
      scanner. Every construct seen is tallied as either safe or unsafe.
    - ``UsageCount`` / ``UnsafeCounters``: per-package unsafe tallies split
      into ``used`` (files compiled into the build) and ``total`` (every
      scanned file). Produced by the report aggregator.

All four types add component-wise, so per-file results can be folded in
any order with ``sum()``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

CATEGORIES = ("functions", "expressions", "impls", "traits", "methods")


@dataclass(frozen=True)
class Count:
    """Safe and unsafe tally for one construct category."""

    safe: int = 0
    unsafe: int = 0

    def counted(self, is_unsafe: bool) -> Count:
        """Return a new Count with one more safe or unsafe occurrence."""
        if is_unsafe:
            return Count(self.safe, self.unsafe + 1)
        return Count(self.safe + 1, self.unsafe)

    def __add__(self, other: Count) -> Count:
        if not isinstance(other, Count):
            return NotImplemented
        return Count(self.safe + other.safe, self.unsafe + other.unsafe)

    def __radd__(self, other: Any) -> Count:
        if other == 0:
            return self
        return self.__add__(other)

    def to_dict(self) -> dict[str, int]:
        return {"safe": self.safe, "unsafe": self.unsafe}


@dataclass(frozen=True)
class CounterBlock:
    """Raw tallies for the five categories of a single scan."""

    functions: Count = field(default_factory=Count)
    expressions: Count = field(default_factory=Count)
    impls: Count = field(default_factory=Count)
    traits: Count = field(default_factory=Count)
    methods: Count = field(default_factory=Count)

    def has_unsafe(self) -> bool:
        return any(getattr(self, name).unsafe > 0 for name in CATEGORIES)

    def __add__(self, other: CounterBlock) -> CounterBlock:
        if not isinstance(other, CounterBlock):
            return NotImplemented
        return CounterBlock(
            **{name: getattr(self, name) + getattr(other, name) for name in CATEGORIES}
        )

    def __radd__(self, other: Any) -> CounterBlock:
        if other == 0:
            return self
        return self.__add__(other)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {name: getattr(self, name).to_dict() for name in CATEGORIES}


@dataclass(frozen=True)
class UsageCount:
    """Unsafe occurrences in compiled files (``used``) vs all files (``total``)."""

    used: int = 0
    total: int = 0

    def __post_init__(self) -> None:
        if self.used < 0 or self.total < 0:
            raise ValueError("counts must be non-negative")
        if self.used > self.total:
            raise ValueError(f"used ({self.used}) cannot exceed total ({self.total})")

    def __add__(self, other: UsageCount) -> UsageCount:
        if not isinstance(other, UsageCount):
            return NotImplemented
        return UsageCount(self.used + other.used, self.total + other.total)

    def __radd__(self, other: Any) -> UsageCount:
        if other == 0:
            return self
        return self.__add__(other)

    def __str__(self) -> str:
        return f"{self.used}/{self.total}"


@dataclass(frozen=True)
class UnsafeCounters:
    """Per-package unsafe usage for the five categories."""

    functions: UsageCount = field(default_factory=UsageCount)
    expressions: UsageCount = field(default_factory=UsageCount)
    impls: UsageCount = field(default_factory=UsageCount)
    traits: UsageCount = field(default_factory=UsageCount)
    methods: UsageCount = field(default_factory=UsageCount)

    @classmethod
    def from_block(cls, block: CounterBlock, used: bool = True) -> UnsafeCounters:
        """Lift a raw file tally into used/total form.

        Args:
            block: Raw tally from a scan
            used: Whether the file was compiled into the build
        """
        return cls(
            **{
                name: UsageCount(
                    getattr(block, name).unsafe if used else 0,
                    getattr(block, name).unsafe,
                )
                for name in CATEGORIES
            }
        )

    def has_used_unsafe(self) -> bool:
        return any(getattr(self, name).used > 0 for name in CATEGORIES)

    def has_any_unsafe(self) -> bool:
        return any(getattr(self, name).total > 0 for name in CATEGORIES)

    def __add__(self, other: UnsafeCounters) -> UnsafeCounters:
        if not isinstance(other, UnsafeCounters):
            return NotImplemented
        return UnsafeCounters(
            **{name: getattr(self, name) + getattr(other, name) for name in CATEGORIES}
        )

    def __radd__(self, other: Any) -> UnsafeCounters:
        if other == 0:
            return self
        return self.__add__(other)

    def to_dict(self) -> dict[str, dict[str, int]]:
        return {
            name: {"used": getattr(self, name).used, "total": getattr(self, name).total}
            for name in CATEGORIES
        }
