"""
either_adapter.tier1_runtime.policy
─────────────────────────────────────
Branch policy: how a response status code maps to the left or right result
type. Explicit code lists always win over ranges; a side's ranges are only
consulted while that side has no explicit codes.

Usage:
    policy = BranchPolicy.explicit(left=[422], right=[200])
    classify(policy, 422)   # → Branch.LEFT
    classify(policy, 201)   # → Branch.UNDETERMINED
"""
from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum

from either_adapter.tier0_core.errors import ConfigurationError
from either_adapter.tier0_core.http import StatusRange

DEFAULT_LEFT_RANGES = frozenset({StatusRange.SUCCESS, StatusRange.REDIRECT})
DEFAULT_RIGHT_RANGES = frozenset({StatusRange.CLIENT_ERROR, StatusRange.SERVER_ERROR})


class Branch(Enum):
    LEFT = "left"
    RIGHT = "right"
    UNDETERMINED = "undetermined"


@dataclass(frozen=True)
class BranchPolicy:
    """Immutable status code → branch configuration."""
    left_codes: frozenset[int] = field(default_factory=frozenset)
    right_codes: frozenset[int] = field(default_factory=frozenset)
    left_ranges: frozenset[StatusRange] = field(default_factory=frozenset)
    right_ranges: frozenset[StatusRange] = field(default_factory=frozenset)

    def __post_init__(self) -> None:
        # Accept any iterable and store frozensets so the policy stays hashable.
        for name in ("left_codes", "right_codes", "left_ranges", "right_ranges"):
            object.__setattr__(self, name, frozenset(getattr(self, name)))

    @classmethod
    def default(cls) -> BranchPolicy:
        """2xx/3xx → left, 4xx/5xx → right."""
        return cls(left_ranges=DEFAULT_LEFT_RANGES, right_ranges=DEFAULT_RIGHT_RANGES)

    @classmethod
    def explicit(
        cls,
        left: Iterable[int] = (),
        right: Iterable[int] = (),
        left_ranges: Iterable[StatusRange] = DEFAULT_LEFT_RANGES,
        right_ranges: Iterable[StatusRange] = DEFAULT_RIGHT_RANGES,
    ) -> BranchPolicy:
        """
        Build a policy the way an annotated call declares one: only the
        fields given are overridden, ranges otherwise keep their defaults.

        ``explicit(left=[200, 201])`` still classifies a 500 as right,
        because the right side has no explicit codes and falls back to
        its default ranges.
        """
        return cls(
            left_codes=left,
            right_codes=right,
            left_ranges=left_ranges,
            right_ranges=right_ranges,
        )

    @property
    def is_empty(self) -> bool:
        return not (self.left_codes or self.right_codes or self.left_ranges or self.right_ranges)

    def validate(self) -> BranchPolicy:
        """Raise ConfigurationError when the policy cannot classify anything."""
        if self.is_empty:
            raise ConfigurationError("Invocation policy has no bound for status code checking.")
        return self


def classify(policy: BranchPolicy, code: int) -> Branch:
    """Classify *code* into LEFT, RIGHT or UNDETERMINED under *policy*."""
    if code in policy.left_codes:
        return Branch.LEFT
    if code in policy.right_codes:
        return Branch.RIGHT

    left_empty = not policy.left_codes
    right_empty = not policy.right_codes

    # Both sides explicit: ranges are never consulted.
    if not left_empty and not right_empty:
        return Branch.UNDETERMINED

    if left_empty and StatusRange.any_contains(policy.left_ranges, code):
        return Branch.LEFT
    if right_empty and StatusRange.any_contains(policy.right_ranges, code):
        return Branch.RIGHT
    return Branch.UNDETERMINED


def describe_undetermined(policy: BranchPolicy, code: int) -> str:
    """Message for an UNDETERMINED classification; always names the code."""
    if policy.left_codes and policy.right_codes:
        return f"Either left nor right does not contain response status code: {code}"
    return f"Cannot determine status code: {code}"


__all__ = [
    "Branch",
    "BranchPolicy",
    "DEFAULT_LEFT_RANGES",
    "DEFAULT_RIGHT_RANGES",
    "classify",
    "describe_undetermined",
]
