"""Table and entity references extracted from statement text.

The resolver only depends on the ``SqlCommandsProcessor`` protocol; the regex
implementation here covers the common SELECT/INSERT/UPDATE/DELETE shapes and
does not attempt full SQL parsing.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from functools import lru_cache
from typing import Iterable, Protocol, Sequence

_CRUD_COMMAND = re.compile(
    r"^\s*(?:insert|update|delete|create|merge)\b", re.IGNORECASE | re.MULTILINE
)

_IDENTIFIER = r'(?:\[[^\]]+\]|"[^"]+"|`[^`]+`|[A-Za-z_][\w$]*)'
_TABLE_REFERENCE = re.compile(
    rf"\b(?:FROM|JOIN|INTO|UPDATE)\s+(?P<name>{_IDENTIFIER}(?:\s*\.\s*{_IDENTIFIER})*)",
    re.IGNORECASE,
)
_IDENTIFIER_PART = re.compile(_IDENTIFIER)


@dataclass(frozen=True, order=True)
class EntityDescriptor:
    """A mapped entity type and the table it is stored in."""

    full_name: str
    table_name: str


class SqlCommandsProcessor(Protocol):
    """Contract consumed by the policy resolver and the query cache service."""

    def is_crud_command(self, command_text: str) -> bool: ...

    def get_table_names(self, command_text: str) -> list[str]: ...

    def get_entity_types(
        self, command_text: str, known_entities: Sequence[EntityDescriptor]
    ) -> list[EntityDescriptor]: ...


def _unquote(identifier: str) -> str:
    if identifier[:1] in ('[', '"', "`"):
        return identifier[1:-1]
    return identifier


@lru_cache(maxsize=1024)
def _extract_table_names(command_text: str) -> tuple[str, ...]:
    names: dict[str, None] = {}
    for match in _TABLE_REFERENCE.finditer(command_text):
        parts = _IDENTIFIER_PART.findall(match["name"])
        if parts:
            names.setdefault(_unquote(parts[-1]), None)
    return tuple(names)


class RegexSqlCommandsProcessor:
    """Default extractor based on regular expressions."""

    def is_crud_command(self, command_text: str) -> bool:
        return _CRUD_COMMAND.search(command_text) is not None

    def get_table_names(self, command_text: str) -> list[str]:
        return list(_extract_table_names(command_text))

    def get_entity_types(
        self, command_text: str, known_entities: Iterable[EntityDescriptor]
    ) -> list[EntityDescriptor]:
        table_names = {name.lower() for name in self.get_table_names(command_text)}
        if not table_names:
            return []
        return [
            entity for entity in known_entities if entity.table_name.lower() in table_names
        ]
