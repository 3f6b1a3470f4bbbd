from __future__ import annotations

from datetime import timedelta

from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from querycache.enums import CacheExpirationMode, TableNameComparison, TableTypeComparison


class CacheAllQueriesOptions(BaseModel):
    """Cache every non-mutating statement."""

    is_active: bool = False
    expiration_mode: CacheExpirationMode = CacheExpirationMode.ABSOLUTE
    timeout: timedelta = timedelta(minutes=30)


class CacheableQueriesOptions(BaseModel):
    """Defaults applied to statements tagged by a default-cacheable method."""

    is_active: bool = False
    expiration_mode: CacheExpirationMode = CacheExpirationMode.ABSOLUTE
    timeout: timedelta = timedelta(minutes=30)


class CacheSpecificQueriesOptions(BaseModel):
    """Cache only the statements whose tables or entity types match."""

    is_active: bool = False
    expiration_mode: CacheExpirationMode = CacheExpirationMode.ABSOLUTE
    timeout: timedelta = timedelta(minutes=30)
    table_names: list[str] | None = None
    entity_types: list[str] | None = None  # fully qualified entity names
    table_name_comparison: TableNameComparison = TableNameComparison.CONTAINS
    entity_type_comparison: TableTypeComparison = TableTypeComparison.CONTAINS


class SkipCacheSpecificQueriesOptions(CacheSpecificQueriesOptions):
    """Cache everything except the statements whose tables or entity types match."""


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="QUERYCACHE_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
        populate_by_name=True,
    )

    app_name: str = "querycache"

    # Redis
    redis_url: str = Field(default="redis://localhost:6379/0", validation_alias="REDIS_URL")

    # Cache store
    cache_key_prefix: str = "qc:"
    entity_cache_prefix: str = "qc:deps"
    key_hash_threshold: int = Field(default=128, ge=1)
    default_ttl: timedelta = timedelta(hours=1)
    dependency_ttl_margin: timedelta = timedelta(minutes=5)

    # Policy rules
    cache_all_queries: CacheAllQueriesOptions = Field(default_factory=CacheAllQueriesOptions)
    cacheable_queries: CacheableQueriesOptions = Field(default_factory=CacheableQueriesOptions)
    cache_specific_queries: CacheSpecificQueriesOptions = Field(
        default_factory=CacheSpecificQueriesOptions
    )
    skip_cache_specific_queries: SkipCacheSpecificQueriesOptions = Field(
        default_factory=SkipCacheSpecificQueriesOptions
    )

    # Legacy/current name pairs invalidated together, e.g. [["ResultEntity", "Result_Result"]]
    invalidation_aliases: list[tuple[str, str]] = Field(default_factory=list)

    # Observability
    log_level: str = "INFO"
    log_json: bool = True

    @field_validator("invalidation_aliases")
    @classmethod
    def _require_both_names(cls, value: list[tuple[str, str]]) -> list[tuple[str, str]]:
        for name, alias in value:
            if not name or not alias:
                raise ValueError("invalidation aliases must name both tables")
        return value


settings = Settings()
