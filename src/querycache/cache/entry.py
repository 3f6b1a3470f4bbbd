"""Cache entry payload and expiration options."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Iterable

import orjson

# Sentinels meaning "never expires"
INFINITE_ABSOLUTE = datetime.max.replace(tzinfo=timezone.utc)
INFINITE_SLIDING = timedelta.max

DEFAULT_TTL = timedelta(hours=1)


@dataclass(frozen=True)
class CacheEntry:
    """A cached value together with the tags it depends on."""

    value: Any
    entity_sets: tuple[str, ...] = field(default_factory=tuple)

    def to_bytes(self) -> bytes:
        """Serialize to JSON bytes."""
        return orjson.dumps({"value": self.value, "entity_sets": list(self.entity_sets)})

    @classmethod
    def from_bytes(cls, data: bytes | str) -> CacheEntry:
        """Deserialize from JSON bytes.

        Raises ValueError when the payload is not a cache entry.
        """
        parsed = orjson.loads(data)
        if not isinstance(parsed, dict) or "value" not in parsed:
            raise ValueError("payload is not a cache entry")

        entity_sets = parsed.get("entity_sets", [])
        if not isinstance(entity_sets, list) or not all(
            isinstance(tag, str) for tag in entity_sets
        ):
            raise ValueError("entity_sets must be a list of strings")
        return cls(value=parsed["value"], entity_sets=tuple(entity_sets))


@dataclass(frozen=True)
class ExpirationOptions:
    """When an entry should expire.

    ``absolute_expiration_relative_to_now`` is a convenience for an absolute
    instant computed at write time.
    """

    absolute_expiration: datetime | None = None
    absolute_expiration_relative_to_now: timedelta | None = None
    sliding_expiration: timedelta | None = None

    def absolute_deadline(self, now: datetime) -> datetime | None:
        if self.absolute_expiration is not None:
            deadline = self.absolute_expiration
            if deadline.tzinfo is None:
                deadline = deadline.replace(tzinfo=timezone.utc)
            return deadline
        if self.absolute_expiration_relative_to_now is not None:
            if self.absolute_expiration_relative_to_now >= INFINITE_SLIDING:
                return INFINITE_ABSOLUTE
            return now + self.absolute_expiration_relative_to_now
        return None


def effective_ttl(
    options: ExpirationOptions | None,
    default: timedelta = DEFAULT_TTL,
    now: datetime | None = None,
) -> timedelta | None:
    """Time-to-live for an entry written now.

    Absolute expiration wins over sliding, and infinite values are ignored.
    Returns None when the absolute deadline has already passed or the sliding
    window is not positive.
    """
    if options is not None:
        now = now or datetime.now(timezone.utc)
        deadline = options.absolute_deadline(now)
        if deadline is not None and deadline < INFINITE_ABSOLUTE:
            remaining = deadline - now
            return remaining if remaining > timedelta(0) else None

        sliding = options.sliding_expiration
        if sliding is not None and sliding < INFINITE_SLIDING:
            return sliding if sliding > timedelta(0) else None

    return default


def normalize_tags(tags: Iterable[str]) -> tuple[str, ...]:
    """De-duplicate dependency tags, keeping their order."""
    return tuple(dict.fromkeys(tag for tag in tags if tag))
