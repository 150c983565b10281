"""Tests for configuration loading, environment overrides and validation"""

import pytest
import yaml

from esg_rag.common.config import (
    DEFAULT_CONFIG_PATH,
    RAGSettings,
    apply_env_overrides,
    load_config,
    save_config,
    settings_from_dict,
    validate_settings,
)
from esg_rag.exceptions import ConfigurationError


class TestDefaults:
    """Dataclass defaults"""

    def test_section_defaults(self):
        """Test every section falls back to its documented defaults"""
        settings = RAGSettings()

        assert settings.chunking.max_tokens == 1000
        assert settings.chunking.overlap_tokens == 200
        assert settings.ingestion.max_tokens == 600
        assert settings.ingestion.overlap_tokens == 100
        assert settings.embeddings.batch_size == 10
        assert settings.embeddings.max_chars == 8192
        assert settings.retrieval.top_k == 5
        assert settings.retrieval.min_similarity == 0.3
        assert settings.retrieval.rerank_boost == 0.01
        assert settings.compliance.top_k == 8
        assert settings.compliance.prompt_template == "legal-audit"
        assert settings.compliance.filter_by_organization is False

    def test_llm_model_resolution(self):
        """Test model defaults depend on the provider"""
        settings = RAGSettings()
        assert settings.llm.resolved_model == "distilgpt2"

        settings.llm.provider = "openai"
        assert settings.llm.resolved_model == "gpt-4-turbo"

        settings.llm.model = "gpt-4o"
        assert settings.llm.resolved_model == "gpt-4o"

    def test_embedding_model_follows_provider(self):
        settings = RAGSettings()
        assert settings.embeddings.model == "sentence-transformers/all-MiniLM-L6-v2"
        settings.embeddings.provider = "openai"
        assert settings.embeddings.model == "text-embedding-3-small"


class TestLoadConfig:
    """YAML loading"""

    def test_bundled_config_loads(self):
        """Test the shipped configs/rag.yaml is valid"""
        assert DEFAULT_CONFIG_PATH.exists()
        settings = load_config(apply_env=False)

        assert settings.vector_store.collection_name == "esg_documents"
        assert settings.generation.prompt_template == "esg-compliance"

    def test_partial_file_keeps_defaults(self, tmp_path):
        """Test missing sections and keys fall back to defaults"""
        path = tmp_path / "rag.yaml"
        path.write_text(yaml.safe_dump({"retrieval": {"top_k": 9}}))

        settings = load_config(str(path), apply_env=False)

        assert settings.retrieval.top_k == 9
        assert settings.retrieval.min_similarity == 0.3
        assert settings.chunking.max_tokens == 1000

    def test_missing_explicit_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "absent.yaml"))

    def test_unknown_key_rejected(self, tmp_path):
        path = tmp_path / "rag.yaml"
        path.write_text(yaml.safe_dump({"retrieval": {"top_kk": 9}}))

        with pytest.raises(ConfigurationError) as exc_info:
            load_config(str(path), apply_env=False)
        assert exc_info.value.field == "retrieval"

    def test_unknown_section_rejected(self):
        with pytest.raises(ConfigurationError):
            settings_from_dict({"rerank": {}})

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "rag.yaml"
        path.write_text("retrieval: [unclosed")

        with pytest.raises(ConfigurationError):
            load_config(str(path), apply_env=False)

    def test_save_and_reload(self, tmp_path):
        """Test saved settings load back unchanged"""
        settings = RAGSettings()
        settings.retrieval.top_k = 7
        path = tmp_path / "out" / "rag.yaml"

        save_config(settings, str(path))
        reloaded = load_config(str(path), apply_env=False)

        assert reloaded.to_dict() == settings.to_dict()


class TestEnvOverrides:
    """Environment variable overrides"""

    def test_overrides_are_typed(self):
        settings = apply_env_overrides(RAGSettings(), {
            "RAG_TOP_K": "12",
            "RAG_MIN_SIMILARITY": "0.45",
            "LLM_PROVIDER": "openai",
        })

        assert settings.retrieval.top_k == 12
        assert settings.retrieval.min_similarity == 0.45
        assert settings.llm.provider == "openai"

    def test_api_key_goes_to_both_sections(self):
        settings = apply_env_overrides(RAGSettings(), {"OPENAI_API_KEY": "sk-test"})

        assert settings.llm.api_key == "sk-test"
        assert settings.embeddings.api_key == "sk-test"

    def test_empty_values_ignored(self):
        settings = apply_env_overrides(RAGSettings(), {"RAG_TOP_K": ""})
        assert settings.retrieval.top_k == 5

    def test_bad_number(self):
        with pytest.raises(ConfigurationError) as exc_info:
            apply_env_overrides(RAGSettings(), {"RAG_TOP_K": "many"})
        assert exc_info.value.field == "RAG_TOP_K"

    def test_env_beats_file(self, tmp_path, monkeypatch):
        path = tmp_path / "rag.yaml"
        path.write_text(yaml.safe_dump({"retrieval": {"top_k": 9}}))
        monkeypatch.setenv("RAG_TOP_K", "3")

        assert load_config(str(path)).retrieval.top_k == 3


class TestValidation:
    """Option validation"""

    def test_overlap_must_be_smaller_than_max(self):
        settings = RAGSettings()
        settings.chunking.overlap_tokens = 1000

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings(settings)
        assert exc_info.value.field == "chunking.overlap_tokens"

    def test_unknown_provider(self):
        settings = RAGSettings()
        settings.embeddings.provider = "cohere"

        with pytest.raises(ConfigurationError):
            validate_settings(settings)

    def test_unknown_backend(self):
        settings = RAGSettings()
        settings.vector_store.backend = "faiss"

        with pytest.raises(ConfigurationError):
            validate_settings(settings)

    def test_non_positive_sizes(self):
        settings = RAGSettings()
        settings.embeddings.batch_size = 0

        with pytest.raises(ConfigurationError):
            validate_settings(settings)

    def test_similarity_range(self):
        settings = RAGSettings()
        settings.retrieval.min_similarity = 1.5

        with pytest.raises(ConfigurationError):
            validate_settings(settings)

    def test_log_level(self):
        settings = RAGSettings()
        settings.logging.level = "chatty"

        with pytest.raises(ConfigurationError):
            validate_settings(settings)

    def test_unknown_llm_provider(self):
        settings = RAGSettings()
        settings.llm.provider = "anthropic"

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings(settings)
        assert exc_info.value.field == "llm.provider"

    def test_negative_rerank_boost(self):
        settings = RAGSettings()
        settings.compliance.rerank_boost = -0.5

        with pytest.raises(ConfigurationError) as exc_info:
            validate_settings(settings)
        assert exc_info.value.field == "compliance.rerank_boost"

    def test_config_module_has_no_depth_setting(self):
        """Test analysis depth is not a configurable option"""
        from esg_rag.common import config

        assert not hasattr(config, "ANALYSIS_DEPTHS")
        assert not any("depth" in key for key in RAGSettings().to_dict()["compliance"])
