"""Cache policy resolution.

Given statement text, decide whether its result may be cached and with which
policy. Sources are consulted in a fixed order and the first match wins:

1. non-deterministic constructs (never cached)
2. the configured skip predicate
3. an embedded directive
4. the cache-specific-queries rule
5. the skip-cache-specific-queries rule
6. the cache-all-queries rule

Resolution performs no I/O.
"""

from __future__ import annotations

import logging
from typing import Callable, Sequence

from querycache.config import CacheSpecificQueriesOptions, Settings
from querycache.config import settings as default_settings
from querycache.policy.comparison import match_entity_types, match_table_names
from querycache.policy.directive import DirectiveParser
from querycache.policy.extractor import (
    EntityDescriptor,
    RegexSqlCommandsProcessor,
    SqlCommandsProcessor,
)
from querycache.policy.models import NOT_CACHEABLE_MARKER, CachePolicy

logger = logging.getLogger(__name__)

# Results depending on these are not reproducible, so they are never cached.
NON_DETERMINISTIC_FUNCTIONS: frozenset[str] = frozenset(
    item.lower()
    for item in (
        "SELECT 1",
        "OBJECT_ID",
        "NEWID()",
        "GETDATE()",
        "GETUTCDATE()",
        "SYSDATETIME()",
        "SYSUTCDATETIME()",
        "SYSDATETIMEOFFSET()",
        "CURRENT_USER()",
        "CURRENT_TIMESTAMP()",
        "HOST_NAME()",
        "USER_NAME()",
        "NOW()",
        "getguid()",
        "uuid_generate_v4()",
        "current_timestamp",
        "current_date",
        "current_time",
        "MigrationId",
    )
)

SkipPredicate = Callable[[str], bool]


class CachePolicyResolver:
    """Turns statement text into an effective ``CachePolicy`` or None."""

    def __init__(
        self,
        sql_commands_processor: SqlCommandsProcessor | None = None,
        settings: Settings | None = None,
        skip_caching_commands: SkipPredicate | None = None,
    ):
        self.settings = settings or default_settings
        self.processor: SqlCommandsProcessor = (
            sql_commands_processor or RegexSqlCommandsProcessor()
        )
        self.skip_caching_commands = skip_caching_commands
        self.directives = DirectiveParser(self.settings)

    def resolve(
        self,
        command_text: str,
        known_entities: Sequence[EntityDescriptor] = (),
    ) -> CachePolicy | None:
        if command_text is None:
            raise TypeError("command_text must not be None")

        if self._contains_non_deterministic_function(command_text):
            return None

        if self._should_skip(command_text):
            return None

        policy = (
            self.directives.parse_directive(command_text)
            or self._specific_queries_policy(command_text, known_entities)
            or self._skipped_specific_queries_policy(command_text, known_entities)
            or self._all_queries_policy(command_text)
        )
        if policy is not None:
            logger.debug(f"Using cache policy: {policy}")
        return policy

    def _contains_non_deterministic_function(self, command_text: str) -> bool:
        lowered = command_text.lower()
        for item in NON_DETERMINISTIC_FUNCTIONS:
            if item in lowered:
                logger.debug(f"Skipped caching because of the non-deterministic function {item}")
                return True
        return False

    def _should_skip(self, command_text: str) -> bool:
        if self.skip_caching_commands is None or not self.skip_caching_commands(command_text):
            return False
        logger.debug("Skipped caching of command based on the provided predicate")
        return True

    def _is_excluded(self, command_text: str) -> bool:
        return (
            self.processor.is_crud_command(command_text) or NOT_CACHEABLE_MARKER in command_text
        )

    def _table_names_match(self, command_text: str, options: CacheSpecificQueriesOptions) -> bool:
        if options.table_names is None:
            return False
        return match_table_names(
            self.processor.get_table_names(command_text),
            options.table_names,
            options.table_name_comparison,
        )

    def _entity_types_match(
        self,
        command_text: str,
        options: CacheSpecificQueriesOptions,
        known_entities: Sequence[EntityDescriptor],
    ) -> bool:
        if options.entity_types is None:
            return False
        return match_entity_types(
            self.processor.get_entity_types(command_text, known_entities),
            options.entity_types,
            options.entity_type_comparison,
        )

    def _specific_queries_policy(
        self, command_text: str, known_entities: Sequence[EntityDescriptor]
    ) -> CachePolicy | None:
        options = self.settings.cache_specific_queries
        if not options.is_active or self._is_excluded(command_text):
            return None

        # The entity-type list decides when both lists are configured.
        if options.entity_types is not None:
            should_cache = self._entity_types_match(command_text, options, known_entities)
        else:
            should_cache = self._table_names_match(command_text, options)

        if not should_cache:
            return None
        return CachePolicy(expiration_mode=options.expiration_mode, timeout=options.timeout)

    def _skipped_specific_queries_policy(
        self, command_text: str, known_entities: Sequence[EntityDescriptor]
    ) -> CachePolicy | None:
        options = self.settings.skip_cache_specific_queries
        if not options.is_active or self._is_excluded(command_text):
            return None

        if self._table_names_match(command_text, options) or self._entity_types_match(
            command_text, options, known_entities
        ):
            logger.debug("Skipped caching because the command matches the skip rule")
            return None
        return CachePolicy(expiration_mode=options.expiration_mode, timeout=options.timeout)

    def _all_queries_policy(self, command_text: str) -> CachePolicy | None:
        options = self.settings.cache_all_queries
        if not options.is_active or self._is_excluded(command_text):
            return None
        return CachePolicy(expiration_mode=options.expiration_mode, timeout=options.timeout)
