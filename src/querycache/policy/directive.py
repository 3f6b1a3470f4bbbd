"""Detect, strip and parse cache policy directives embedded in statement text."""

from __future__ import annotations

import logging

from querycache.config import Settings
from querycache.config import settings as default_settings
from querycache.enums import CacheExpirationMode
from querycache.policy.models import (
    DEPENDENCIES_SEPARATOR,
    DIRECTIVE_TAG_PREFIX,
    ITEMS_SEPARATOR,
    PARTS_SEPARATOR,
    CachePolicy,
)
from querycache.policy.timespan import parse_timespan

logger = logging.getLogger(__name__)

_BLANK_LINES = ("\n", "\r\n")


def _parse_bool(value: str) -> bool | None:
    normalized = value.strip().lower()
    if normalized in ("", "false"):
        return False
    if normalized == "true":
        return True
    return None


class DirectiveParser:
    """Reads the ``-- EFCoreCachePolicy`` comment line out of statement text."""

    def __init__(self, settings: Settings | None = None):
        self.settings = settings or default_settings

    @staticmethod
    def has_directive(command_text: str | None) -> bool:
        if not command_text or not command_text.strip():
            return False
        return DIRECTIVE_TAG_PREFIX in command_text

    @staticmethod
    def strip_directive(command_text: str) -> str:
        """Remove directive lines, plus the blank line tag insertion leaves behind.

        A directive without a line terminator is left in place.
        """
        if command_text is None:
            raise TypeError("command_text must not be None")

        text = command_text
        search_from = 0
        while True:
            start = text.find(DIRECTIVE_TAG_PREFIX, search_from)
            if start == -1:
                return text

            end = text.find("\n", start)
            if end == -1:
                return text

            for blank in _BLANK_LINES:
                if text.startswith(blank, end + 1):
                    end += len(blank)
                    break

            text = text[:start] + text[end + 1 :]
            search_from = max(0, start - len(DIRECTIVE_TAG_PREFIX))

    def parse_directive(self, command_text: str) -> CachePolicy | None:
        """Build a policy from the first directive line, or None if malformed."""
        if command_text is None:
            raise TypeError("command_text must not be None")
        if not self.has_directive(command_text):
            return None

        line = next(
            (
                text_line.strip()
                for text_line in command_text.split("\n")
                if text_line.startswith(DIRECTIVE_TAG_PREFIX)
            ),
            None,
        )
        if line is None:
            return None

        parts = [part for part in line.split(PARTS_SEPARATOR) if part]
        if len(parts) != 2:
            logger.debug(f"Ignoring directive with {len(parts)} parts: {line}")
            return None

        options = parts[1].strip().split(ITEMS_SEPARATOR)
        if len(options) < 2:
            return None

        expiration_mode = CacheExpirationMode.parse(options[0])
        if expiration_mode is None:
            logger.debug(f"Unknown expiration mode in directive: {options[0]!r}")
            return None

        timeout = parse_timespan(options[1])
        if timeout is None:
            logger.debug(f"Invalid timeout in directive: {options[1]!r}")
            return None

        salt_key = options[2] if len(options) >= 3 else ""
        dependencies = (
            [dep.strip() for dep in options[3].split(DEPENDENCIES_SEPARATOR)]
            if len(options) >= 4
            else []
        )

        is_default_cacheable = _parse_bool(options[4]) if len(options) >= 5 else False
        if is_default_cacheable is None:
            logger.debug(f"Invalid default-cacheable flag in directive: {options[4]!r}")
            return None

        if is_default_cacheable:
            cache_all = self.settings.cache_all_queries
            cacheable = self.settings.cacheable_queries
            if cache_all.is_active:
                expiration_mode, timeout = cache_all.expiration_mode, cache_all.timeout
            elif cacheable.is_active:
                expiration_mode, timeout = cacheable.expiration_mode, cacheable.timeout

        return CachePolicy(
            expiration_mode=expiration_mode,
            timeout=timeout,
            salt_key=salt_key,
            dependencies=tuple(dependencies),
            is_default_cacheable=is_default_cacheable,
        )
