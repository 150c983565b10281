"""
Configuration for the ESG RAG core.

Dataclass sections loaded from YAML, with environment variable overrides.

Priority (highest to lowest):
1. Environment variables
2. YAML file
3. Dataclass defaults
"""

import os
import logging
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any, Dict, Optional, Tuple

import yaml

from ..exceptions import ConfigurationError


logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).resolve().parents[2] / "configs" / "rag.yaml"

EMBEDDING_PROVIDERS = ("local", "openai")
LLM_PROVIDERS = ("local", "openai")
VECTOR_BACKENDS = ("memory", "chroma")


@dataclass
class ChunkingConfig:
    """Chunker defaults"""
    max_tokens: int = 1000
    overlap_tokens: int = 200
    preserve_paragraphs: bool = True
    preserve_sentences: bool = True
    min_chunk_size: int = 100
    encoding: str = "cl100k_base"


@dataclass
class IngestionConfig:
    """Chunk sizes and corpus location used when loading documents"""
    max_tokens: int = 600
    overlap_tokens: int = 100
    min_document_chars: int = 50
    corpus_dir: str = "data/esg_corpus"


@dataclass
class EmbeddingConfig:
    """Embedding provider configuration"""
    provider: str = "local"
    local_model: str = "sentence-transformers/all-MiniLM-L6-v2"
    openai_model: str = "text-embedding-3-small"
    api_key: Optional[str] = None
    batch_size: int = 10
    batch_delay_seconds: float = 0.1
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0
    max_chars: int = 8192

    @property
    def model(self) -> str:
        return self.openai_model if self.provider == "openai" else self.local_model


@dataclass
class VectorStoreConfig:
    """Vector store backend"""
    backend: str = "memory"
    persist_dir: str = "data/chromadb"
    collection_name: str = "esg_documents"
    working_set_limit: int = 1000


@dataclass
class RetrievalConfig:
    """Retrieval defaults for the RAG chain"""
    top_k: int = 5
    min_similarity: float = 0.3
    enable_reranking: bool = False
    rerank_boost: float = 0.01


@dataclass
class GenerationConfig:
    """Prompt assembly and guardrails"""
    prompt_template: str = "esg-compliance"
    include_source_citations: bool = True
    max_context_tokens: int = 3000
    enable_guardrails: bool = True


@dataclass
class LLMConfig:
    """Language model provider configuration"""
    provider: str = "local"
    model: Optional[str] = None
    api_key: Optional[str] = None
    temperature: float = 0.2
    max_tokens: int = 1000
    max_retries: int = 3
    retry_base_delay_seconds: float = 1.0

    OPENAI_DEFAULT_MODEL = "gpt-4-turbo"
    LOCAL_DEFAULT_MODEL = "distilgpt2"

    @property
    def resolved_model(self) -> str:
        if self.model:
            return self.model
        return self.OPENAI_DEFAULT_MODEL if self.provider == "openai" else self.LOCAL_DEFAULT_MODEL


@dataclass
class ComplianceConfig:
    """Retrieval and generation settings used by the compliance analyzer"""
    top_k: int = 8
    min_similarity: float = 0.2
    enable_reranking: bool = True
    rerank_boost: float = 0.01
    prompt_template: str = "legal-audit"
    temperature: float = 0.1
    max_tokens: int = 2000
    min_report_chars: int = 100
    filter_by_organization: bool = False


@dataclass
class LoggingConfig:
    level: str = "INFO"
    log_file: Optional[str] = None


@dataclass
class RAGSettings:
    """Main configuration container"""
    chunking: ChunkingConfig = field(default_factory=ChunkingConfig)
    ingestion: IngestionConfig = field(default_factory=IngestionConfig)
    embeddings: EmbeddingConfig = field(default_factory=EmbeddingConfig)
    vector_store: VectorStoreConfig = field(default_factory=VectorStoreConfig)
    retrieval: RetrievalConfig = field(default_factory=RetrievalConfig)
    generation: GenerationConfig = field(default_factory=GenerationConfig)
    llm: LLMConfig = field(default_factory=LLMConfig)
    compliance: ComplianceConfig = field(default_factory=ComplianceConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


SECTION_TYPES = {f.name: f.default_factory for f in fields(RAGSettings)}

# Environment variable -> (section, key)
ENV_MAPPINGS: Dict[str, Tuple[Tuple[str, str], ...]] = {
    "OPENAI_API_KEY": (("llm", "api_key"), ("embeddings", "api_key")),
    "LLM_PROVIDER": (("llm", "provider"),),
    "LLM_MODEL": (("llm", "model"),),
    "EMBEDDING_PROVIDER": (("embeddings", "provider"),),
    "EMBEDDING_MODEL": (("embeddings", "local_model"),),
    "VECTOR_STORE_BACKEND": (("vector_store", "backend"),),
    "CHROMADB_DIR": (("vector_store", "persist_dir"),),
    "RAG_TOP_K": (("retrieval", "top_k"),),
    "RAG_MIN_SIMILARITY": (("retrieval", "min_similarity"),),
    "LOG_LEVEL": (("logging", "level"),),
}


def _convert(value: str, current: Any, name: str) -> Any:
    """Convert an environment string to the type of the field it overrides."""
    try:
        if isinstance(current, bool):
            return value.strip().lower() in ("true", "1", "yes")
        if isinstance(current, int):
            return int(value)
        if isinstance(current, float):
            return float(value)
    except ValueError as e:
        raise ConfigurationError(f"Invalid value for {name}: {value!r}", field=name) from e
    return value


def _build_section(name: str, values: Optional[Dict[str, Any]]):
    factory = SECTION_TYPES[name]
    if values is None:
        return factory()
    if not isinstance(values, dict):
        raise ConfigurationError(f"Section '{name}' must be a mapping", field=name)
    known = {f.name for f in fields(factory)}
    unknown = set(values) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown keys in section '{name}': {sorted(unknown)}", field=name
        )
    return factory(**values)


def apply_env_overrides(settings: RAGSettings, environ: Optional[Dict[str, str]] = None) -> RAGSettings:
    """
    Apply environment variable overrides in place.

    Args:
        settings: Loaded settings
        environ: Mapping to read from (defaults to os.environ)

    Returns:
        The same settings object
    """
    environ = os.environ if environ is None else environ
    applied = []

    for env_var, targets in ENV_MAPPINGS.items():
        raw = environ.get(env_var)
        if raw is None or raw == "":
            continue
        for section_name, key in targets:
            section = getattr(settings, section_name)
            setattr(section, key, _convert(raw, getattr(section, key), env_var))
            applied.append(f"{env_var} -> {section_name}.{key}")

    if applied:
        logger.info(f"Applied {len(applied)} environment overrides")
        for override in applied:
            logger.debug(f"  {override}")

    return settings


def validate_settings(settings: RAGSettings) -> RAGSettings:
    """
    Reject invalid option values before any processing starts.

    Raises:
        ConfigurationError: On the first invalid value found
    """
    if settings.embeddings.provider not in EMBEDDING_PROVIDERS:
        raise ConfigurationError(
            f"Unknown embedding provider: {settings.embeddings.provider}", field="embeddings.provider"
        )
    if settings.llm.provider not in LLM_PROVIDERS:
        raise ConfigurationError(f"Unknown LLM provider: {settings.llm.provider}", field="llm.provider")
    if settings.vector_store.backend not in VECTOR_BACKENDS:
        raise ConfigurationError(
            f"Unknown vector store backend: {settings.vector_store.backend}", field="vector_store.backend"
        )

    for section_name in ("chunking", "ingestion"):
        section = getattr(settings, section_name)
        if section.max_tokens <= 0:
            raise ConfigurationError("max_tokens must be positive", field=f"{section_name}.max_tokens")
        if section.overlap_tokens < 0:
            raise ConfigurationError("overlap_tokens must not be negative", field=f"{section_name}.overlap_tokens")
        if section.overlap_tokens >= section.max_tokens:
            raise ConfigurationError(
                f"overlap_tokens ({section.overlap_tokens}) must be smaller than max_tokens ({section.max_tokens})",
                field=f"{section_name}.overlap_tokens",
            )

    positive = {
        "embeddings.batch_size": settings.embeddings.batch_size,
        "embeddings.max_retries": settings.embeddings.max_retries,
        "embeddings.max_chars": settings.embeddings.max_chars,
        "vector_store.working_set_limit": settings.vector_store.working_set_limit,
        "retrieval.top_k": settings.retrieval.top_k,
        "generation.max_context_tokens": settings.generation.max_context_tokens,
        "llm.max_tokens": settings.llm.max_tokens,
        "llm.max_retries": settings.llm.max_retries,
        "compliance.top_k": settings.compliance.top_k,
        "compliance.max_tokens": settings.compliance.max_tokens,
    }
    for name, value in positive.items():
        if value <= 0:
            raise ConfigurationError(f"{name} must be positive, got {value}", field=name)

    for name, value in (
        ("retrieval.min_similarity", settings.retrieval.min_similarity),
        ("compliance.min_similarity", settings.compliance.min_similarity),
    ):
        if not -1.0 <= value <= 1.0:
            raise ConfigurationError(f"{name} must be within [-1, 1], got {value}", field=name)

    for name, value in (
        ("retrieval.rerank_boost", settings.retrieval.rerank_boost),
        ("compliance.rerank_boost", settings.compliance.rerank_boost),
    ):
        if value < 0:
            raise ConfigurationError(f"{name} must not be negative, got {value}", field=name)

    if logging.getLevelName(settings.logging.level.upper()) not in (
        logging.DEBUG, logging.INFO, logging.WARNING, logging.ERROR, logging.CRITICAL
    ):
        raise ConfigurationError(f"Unknown log level: {settings.logging.level}", field="logging.level")

    return settings


def settings_from_dict(config_dict: Optional[Dict[str, Any]]) -> RAGSettings:
    """Build settings from a plain dict; missing sections fall back to defaults."""
    config_dict = config_dict or {}
    unknown = set(config_dict) - set(SECTION_TYPES)
    if unknown:
        raise ConfigurationError(f"Unknown config sections: {sorted(unknown)}")
    return RAGSettings(**{name: _build_section(name, config_dict.get(name)) for name in SECTION_TYPES})


def load_config(config_path: Optional[str] = None, apply_env: bool = True) -> RAGSettings:
    """
    Load, override and validate configuration.

    Args:
        config_path: YAML file; the bundled configs/rag.yaml is used when omitted
            and silently skipped if it is not shipped
        apply_env: Apply environment variable overrides (default: True)

    Returns:
        Validated RAGSettings

    Raises:
        FileNotFoundError: If an explicit config file doesn't exist
        ConfigurationError: If a value is invalid
    """
    config_dict: Dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Config file not found: {config_path}")
    else:
        path = DEFAULT_CONFIG_PATH

    if path.exists():
        try:
            with open(path, "r", encoding="utf-8") as f:
                config_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            logger.error(f"Failed to parse YAML config: {e}")
            raise ConfigurationError(f"Failed to parse YAML config {path}: {e}") from e
        logger.info(f"Loaded config from: {path}")

    settings = settings_from_dict(config_dict)
    if apply_env:
        apply_env_overrides(settings)
    return validate_settings(settings)


def save_config(settings: RAGSettings, path: str):
    """Save configuration to YAML file"""
    Path(path).parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as f:
        yaml.dump(settings.to_dict(), f, default_flow_style=False)
