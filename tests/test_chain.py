"""Tests for the RAG chain (retrieve → prompt → generate → guardrails)"""

import pytest

from conftest import ScriptedLLM
from esg_rag.common.config import ComplianceConfig, GenerationConfig, RetrievalConfig
from esg_rag.exceptions import DimensionMismatch, ProviderError, QueryFailed, TemplateNotFound
from esg_rag.rag import NO_RESULTS_ANSWER
from esg_rag.rag.chain import ChainConfig, RAGChain
from esg_rag.rag.prompts import CITATION_INSTRUCTION, DISCLAIMER
from esg_rag.rag.prompts.strategy import RequesterRole, UserContext
from esg_rag.rag.retrieval import VectorStore
from esg_rag.rag.schemas.vectors import SearchResult, VectorRecord


class TestEmptyRetrieval:

    @pytest.mark.asyncio
    async def test_empty_store_never_calls_llm(self, vector_store, llm):
        """Test an empty store yields the fixed answer without a model call"""
        chain = RAGChain(vector_store, llm)

        response = await chain.query("What are the TCFD governance disclosure requirements?")

        assert response.answer == NO_RESULTS_ANSWER
        assert response.sources == []
        assert response.metadata.retrieved_chunks == 0
        assert response.to_dict()["metadata"]["retrievedChunks"] == 0
        assert llm.calls == []


class TestQuery:

    @pytest.mark.asyncio
    async def test_answer_sources_and_metadata(self, seeded_store, llm):
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.1))

        response = await chain.query("How should the board oversee climate governance?")

        assert response.answer.startswith("According to the documents [Source 1]")
        assert response.sources[0].id == "tcfd_chunk_0"
        assert response.sources[0].filename == "tcfd.txt"
        assert response.sources[0].organization == "TCFD"
        assert response.sources[0].page_number == 4
        assert response.metadata.retrieved_chunks == len(response.sources)
        assert response.metadata.llm_model == "fake-llm"
        assert response.metadata.usage.total_tokens == 20
        assert response.metadata.validation["isValid"] is True
        assert response.metadata.processing_time_ms >= 0

        user_prompt, system_prompt = llm.calls[0]
        assert "[Source 1: tcfd.txt" in user_prompt
        assert user_prompt.endswith(CITATION_INSTRUCTION)
        assert system_prompt

    def test_sources_rounded_and_snippets_bounded(self):
        results = [SearchResult(id="long", content="x" * 500, metadata={"filename": "long.txt"}, similarity=0.98765)]

        sources = RAGChain.format_sources(results)

        assert len(sources[0].snippet) == 200
        assert sources[0].snippet.endswith("...")
        assert sources[0].similarity == 0.988
        assert sources[0].region is None
        assert sources[0].page_number is None

    def test_missing_filename_reported_as_unknown(self):
        results = [SearchResult(id="x", content="short", metadata={}, similarity=0.5)]
        assert RAGChain.format_sources(results)[0].filename == "Unknown"

    @pytest.mark.asyncio
    async def test_filters_passed_to_retrieval(self, seeded_store, llm):
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.0))

        response = await chain.query("climate emissions", filters={"organization": "EFRAG"})

        assert [s.id for s in response.sources] == ["esrs_chunk_0"]

    @pytest.mark.asyncio
    async def test_user_context_in_prompt(self, seeded_store, llm):
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.1))

        await chain.query("board governance", user_context=UserContext(role=RequesterRole.AUDITOR))

        assert "REQUESTER CONTEXT: Role: auditor" in llm.calls[0][0]

    @pytest.mark.asyncio
    async def test_guardrails_append_disclaimer(self, seeded_store):
        llm = ScriptedLLM(["Generally speaking, boards review climate risk."])
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.1))

        response = await chain.query("board governance")

        assert response.answer.endswith(DISCLAIMER)
        assert response.metadata.validation["isValid"] is False

    @pytest.mark.asyncio
    async def test_guardrails_disabled(self, seeded_store):
        llm = ScriptedLLM(["Generally speaking, boards review climate risk."])
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.1, enable_guardrails=False))

        response = await chain.query("board governance")

        assert response.answer == "Generally speaking, boards review climate risk."
        assert response.metadata.validation is None

    @pytest.mark.asyncio
    async def test_context_budget_limits_prompt_not_sources(self, seeded_store, llm):
        chain = RAGChain(seeded_store, llm, config=ChainConfig(min_similarity=0.0, max_context_tokens=1))

        response = await chain.query("climate board governance emissions scope")

        assert len(response.sources) > 1
        assert response.metadata.context_chunks == 1
        assert "[Source 2:" not in llm.calls[0][0]


class TestReranking:

    @pytest.fixture
    def close_store(self, vector_store):
        # "climate governance oversight" embeds as [1, 0, 1, 0, 0, 0, 0, 0]
        vector_store.add([
            VectorRecord("a", "unrelated wording", [1.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.1], {"filename": "a.txt"}),
            VectorRecord("b", "climate governance oversight", [1.0, 0.0, 1.0, 0.0, 0.0, 0.0, 0.0, 0.3],
                         {"filename": "b.txt"}),
        ])
        return vector_store

    @pytest.mark.asyncio
    async def test_cosine_order_without_reranking(self, close_store, llm):
        chain = RAGChain(close_store, llm, config=ChainConfig(min_similarity=0.0))

        results = await chain.retrieve("climate governance oversight")

        assert [r.id for r in results] == ["a", "b"]

    @pytest.mark.asyncio
    async def test_reranking_reorders_by_keywords(self, close_store, llm):
        chain = RAGChain(close_store, llm, config=ChainConfig(min_similarity=0.0, enable_reranking=True))

        results = await chain.retrieve("climate governance oversight")

        assert [r.id for r in results] == ["b", "a"]
        assert results[0].similarity == 1.0


class TestFailures:

    def test_unknown_template_rejected_at_construction(self, vector_store, llm):
        with pytest.raises(TemplateNotFound):
            RAGChain(vector_store, llm, config=ChainConfig(prompt_template="nope"))

    @pytest.mark.asyncio
    async def test_provider_failure_becomes_query_failed(self, seeded_store):
        cause = ProviderError("openai", "openai call failed after 3 attempts", attempts=3)
        chain = RAGChain(seeded_store, ScriptedLLM([cause]), config=ChainConfig(min_similarity=0.1))

        with pytest.raises(QueryFailed) as exc_info:
            await chain.query("board governance")

        assert exc_info.value.__cause__ is cause
        assert exc_info.value.question == "board governance"

    @pytest.mark.asyncio
    async def test_retrieval_failure_not_swallowed(self, llm):
        class BrokenStore(VectorStore):
            async def search(self, *args, **kwargs):
                raise RuntimeError("disk gone")

        chain = RAGChain(BrokenStore(None), llm)

        with pytest.raises(QueryFailed) as exc_info:
            await chain.query("anything")
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert llm.calls == []

    @pytest.mark.asyncio
    async def test_dimension_mismatch_passes_through(self, llm):
        class MismatchStore(VectorStore):
            async def search(self, *args, **kwargs):
                raise DimensionMismatch(3, 2)

        with pytest.raises(DimensionMismatch):
            await RAGChain(MismatchStore(None), llm).query("anything")


class TestChainConfig:

    def test_from_settings(self):
        config = ChainConfig.from_settings(RetrievalConfig(top_k=7), GenerationConfig(prompt_template="quick-reference"))
        assert config.top_k == 7
        assert config.prompt_template == "quick-reference"

    def test_for_compliance(self):
        config = ChainConfig.for_compliance(ComplianceConfig(), GenerationConfig())
        assert config.top_k == 8
        assert config.min_similarity == 0.2
        assert config.enable_reranking is True
        assert config.prompt_template == "legal-audit"
        assert config.rerank_boost == 0.01

    def test_for_compliance_carries_rerank_boost(self, vector_store, llm):
        config = ChainConfig.for_compliance(ComplianceConfig(rerank_boost=0.05), GenerationConfig())
        assert config.rerank_boost == 0.05

        chain = RAGChain(vector_store, llm, config=config)
        assert chain.reranker.boost == 0.05

    def test_get_config_has_no_secrets(self, vector_store, llm):
        data = RAGChain(vector_store, llm).get_config()
        assert data["llm"] == {"provider": "fake", "model": "fake-llm"}
        assert data["top_k"] == 5
