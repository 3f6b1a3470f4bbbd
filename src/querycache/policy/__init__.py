"""Cache policy resolution for executed statements.

Decides per statement whether its result is cached and for how long:
- Embedded ``-- EFCoreCachePolicy`` directives take precedence
- Otherwise configurable rule sets infer eligibility
- Non-deterministic statements are never cached
"""

from querycache.policy.directive import DirectiveParser
from querycache.policy.extractor import (
    EntityDescriptor,
    RegexSqlCommandsProcessor,
    SqlCommandsProcessor,
)
from querycache.policy.models import (
    DIRECTIVE_TAG_PREFIX,
    NOT_CACHEABLE_MARKER,
    CachePolicy,
    tag_with_policy,
)
from querycache.policy.resolver import NON_DETERMINISTIC_FUNCTIONS, CachePolicyResolver
from querycache.policy.timespan import format_timespan, parse_timespan

__all__ = [
    # Policy values
    "CachePolicy",
    "DIRECTIVE_TAG_PREFIX",
    "NOT_CACHEABLE_MARKER",
    "tag_with_policy",
    "format_timespan",
    "parse_timespan",
    # Resolution
    "CachePolicyResolver",
    "DirectiveParser",
    "NON_DETERMINISTIC_FUNCTIONS",
    # Extraction
    "EntityDescriptor",
    "RegexSqlCommandsProcessor",
    "SqlCommandsProcessor",
]
