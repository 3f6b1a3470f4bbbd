"""Cache policy value type and its directive wire format.

A policy travels inside statement text as a single comment line:

    -- EFCoreCachePolicy => Absolute|00:30:00|salt|Users,Orders|False

The tag marker is shared with the ORM side that injects it, so it stays
byte-compatible with statements tagged upstream.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from datetime import timedelta
from typing import Iterable

from querycache.enums import CacheExpirationMode
from querycache.policy.timespan import format_timespan

DIRECTIVE_TAG_PREFIX = "-- EFCoreCachePolicy"
PARTS_SEPARATOR = "=>"
ITEMS_SEPARATOR = "|"
DEPENDENCIES_SEPARATOR = ","

# Statements carrying this marker are never cached by the global rules.
NOT_CACHEABLE_MARKER = "-- NotCacheableQuery"

DEFAULT_TIMEOUT = timedelta(minutes=30)


def _ordered_unique(items: Iterable[str]) -> tuple[str, ...]:
    return tuple(dict.fromkeys(item for item in items if item))


@dataclass(frozen=True)
class CachePolicy:
    """Immutable caching instruction for one statement.

    Build variants with the ``with_*`` methods; each returns a new policy.
    """

    expiration_mode: CacheExpirationMode = CacheExpirationMode.ABSOLUTE
    timeout: timedelta = DEFAULT_TIMEOUT
    salt_key: str = ""
    dependencies: tuple[str, ...] = field(default_factory=tuple)
    is_default_cacheable: bool = False

    def __post_init__(self) -> None:
        object.__setattr__(self, "dependencies", _ordered_unique(self.dependencies))

    def with_expiration_mode(self, mode: CacheExpirationMode) -> CachePolicy:
        return replace(self, expiration_mode=mode)

    def with_timeout(self, timeout: timedelta) -> CachePolicy:
        return replace(self, timeout=timeout)

    def with_salt_key(self, salt_key: str) -> CachePolicy:
        return replace(self, salt_key=salt_key)

    def with_dependencies(self, *dependencies: str) -> CachePolicy:
        return replace(self, dependencies=tuple(dependencies))

    def with_default_cacheable(self, flag: bool = True) -> CachePolicy:
        return replace(self, is_default_cacheable=flag)

    def to_directive(self) -> str:
        """Render the directive comment line (without line terminator)."""
        items = [
            self.expiration_mode.value,
            format_timespan(self.timeout),
            self.salt_key,
            DEPENDENCIES_SEPARATOR.join(self.dependencies),
            str(self.is_default_cacheable),
        ]
        blob = ITEMS_SEPARATOR.join(items).rstrip(ITEMS_SEPARATOR)
        return f"{DIRECTIVE_TAG_PREFIX} {PARTS_SEPARATOR} {blob}"

    def __str__(self) -> str:
        return self.to_directive()


def tag_with_policy(command_text: str, policy: CachePolicy) -> str:
    """Prefix statement text with a policy directive.

    Mirrors ORM tag insertion, which leaves a blank line after the comment.
    """
    return f"{policy.to_directive()}\n\n{command_text}"
