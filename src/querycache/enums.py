"""Enumerations shared by configuration and policy resolution."""

from __future__ import annotations

from enum import Enum


class CacheExpirationMode(str, Enum):
    """How a cached result expires."""

    ABSOLUTE = "Absolute"
    SLIDING = "Sliding"

    @classmethod
    def parse(cls, value: str) -> CacheExpirationMode | None:
        """Case-insensitive lookup by value, None when unknown."""
        candidate = value.strip().lower()
        for mode in cls:
            if mode.value.lower() == candidate:
                return mode
        return None


class TableNameComparison(str, Enum):
    """Predicate applied to the table names referenced by a statement."""

    CONTAINS = "Contains"
    DOES_NOT_CONTAIN = "DoesNotContain"
    ENDS_WITH = "EndsWith"
    DOES_NOT_END_WITH = "DoesNotEndWith"
    STARTS_WITH = "StartsWith"
    DOES_NOT_START_WITH = "DoesNotStartWith"
    CONTAINS_EVERY = "ContainsEvery"
    CONTAINS_ONLY = "ContainsOnly"
    DOES_NOT_CONTAIN_EVERY = "DoesNotContainEvery"


class TableTypeComparison(str, Enum):
    """Predicate applied to the entity types referenced by a statement."""

    CONTAINS = "Contains"
    DOES_NOT_CONTAIN = "DoesNotContain"
    CONTAINS_EVERY = "ContainsEvery"
    CONTAINS_ONLY = "ContainsOnly"
    DOES_NOT_CONTAIN_EVERY = "DoesNotContainEvery"
