"""Shared configuration, logging and retry helpers."""

from .config import (
    RAGSettings,
    ChunkingConfig,
    IngestionConfig,
    EmbeddingConfig,
    VectorStoreConfig,
    RetrievalConfig,
    GenerationConfig,
    LLMConfig,
    ComplianceConfig,
    LoggingConfig,
    load_config,
    save_config,
    settings_from_dict,
    apply_env_overrides,
    validate_settings,
)
from .retry import retry_async, is_transient_error, backoff_delay
from .utils import init_logger, collapse_whitespace, round_int, truncate

__all__ = [
    "RAGSettings",
    "ChunkingConfig",
    "IngestionConfig",
    "EmbeddingConfig",
    "VectorStoreConfig",
    "RetrievalConfig",
    "GenerationConfig",
    "LLMConfig",
    "ComplianceConfig",
    "LoggingConfig",
    "load_config",
    "save_config",
    "settings_from_dict",
    "apply_env_overrides",
    "validate_settings",
    "retry_async",
    "is_transient_error",
    "backoff_delay",
    "init_logger",
    "collapse_whitespace",
    "round_int",
    "truncate",
]
