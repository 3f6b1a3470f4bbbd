"""Predicates matching extracted table names / entity types against configured ones.

An empty extraction or an empty configured list never matches: a caching
decision is never based on the absence of a signal.
"""

from __future__ import annotations

from typing import Sequence

from querycache.enums import TableNameComparison, TableTypeComparison
from querycache.policy.extractor import EntityDescriptor


def _folded(names: Sequence[str]) -> set[str]:
    return {name.casefold() for name in names}


def match_table_names(
    extracted: Sequence[str],
    configured: Sequence[str],
    comparison: TableNameComparison,
) -> bool:
    """Apply a table-name predicate, ignoring case."""
    if not extracted or not configured:
        return False

    command_names = _folded(extracted)
    option_names = _folded(configured)

    if comparison is TableNameComparison.CONTAINS:
        return any(name in command_names for name in option_names)
    if comparison is TableNameComparison.DOES_NOT_CONTAIN:
        return any(name not in command_names for name in option_names)
    if comparison is TableNameComparison.ENDS_WITH:
        return any(
            command.endswith(name) for name in option_names for command in command_names
        )
    if comparison is TableNameComparison.DOES_NOT_END_WITH:
        return any(
            not command.endswith(name) for name in option_names for command in command_names
        )
    if comparison is TableNameComparison.STARTS_WITH:
        return any(
            command.startswith(name) for name in option_names for command in command_names
        )
    if comparison is TableNameComparison.DOES_NOT_START_WITH:
        return any(
            not command.startswith(name) for name in option_names for command in command_names
        )
    if comparison is TableNameComparison.CONTAINS_EVERY:
        return command_names == option_names
    if comparison is TableNameComparison.DOES_NOT_CONTAIN_EVERY:
        return command_names != option_names
    if comparison is TableNameComparison.CONTAINS_ONLY:
        return command_names <= option_names
    return False


def match_entity_types(
    extracted: Sequence[EntityDescriptor],
    configured: Sequence[str],
    comparison: TableTypeComparison,
) -> bool:
    """Apply an entity-type predicate using fully qualified names (case-sensitive)."""
    if not extracted or not configured:
        return False

    command_types = {entity.full_name for entity in extracted}
    option_types = set(configured)

    if comparison is TableTypeComparison.CONTAINS:
        return any(name in command_types for name in option_types)
    if comparison is TableTypeComparison.DOES_NOT_CONTAIN:
        return any(name not in command_types for name in option_types)
    if comparison is TableTypeComparison.CONTAINS_EVERY:
        return sorted(command_types) == sorted(option_types)
    if comparison is TableTypeComparison.DOES_NOT_CONTAIN_EVERY:
        return sorted(command_types) != sorted(option_types)
    if comparison is TableTypeComparison.CONTAINS_ONLY:
        return command_types <= option_types
    return False
