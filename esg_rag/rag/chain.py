"""
RAG Chain

Query → Retrieve → (Rerank) → Budget → Prompt → Generate → Guardrails

A query that retrieves nothing short-circuits to a fixed answer and never
reaches the language model.
"""

import logging
import time
from dataclasses import asdict, dataclass
from typing import Any, Dict, List, Optional

from ..common.config import ComplianceConfig, GenerationConfig, RetrievalConfig
from ..common.utils import round_half_up, truncate
from ..exceptions import (
    ConfigurationError,
    DimensionMismatch,
    QueryFailed,
    TemplateNotFound,
)
from .chunking.codec import Codec
from .context.token_budget import BudgetConfig, TokenBudget
from .generation.providers import LLMProvider
from .prompts.formatter import RetrievedChunk
from .prompts.strategy import PromptContext, PromptStrategy, UserContext
from .retrieval.reranker import KeywordReranker
from .retrieval.vector_store import VectorStore
from .schemas.response import LLMResponse, RAGResponse, ResponseMetadata, SourceAttribution
from .schemas.vectors import SearchResult


logger = logging.getLogger(__name__)

NO_RESULTS_ANSWER = (
    "I couldn't find relevant information in the ESG document corpus to answer your question. "
    "This might be because:\n\n"
    "1. The question is outside the scope of the loaded documents\n"
    "2. The specific topic hasn't been processed yet\n"
    "3. Different keywords might yield better results\n\n"
    "Please try rephrasing your question or ensure the relevant ESG documents have been processed "
    "into the knowledge base."
)

SNIPPET_LENGTH = 200

# Errors that describe a caller or data problem rather than a failed query
_PASSTHROUGH_ERRORS = (QueryFailed, TemplateNotFound, DimensionMismatch, ConfigurationError)


@dataclass
class ChainConfig:
    """Retrieval and generation settings for one chain."""
    top_k: int = 5
    min_similarity: float = 0.3
    enable_reranking: bool = False
    rerank_boost: float = 0.01
    prompt_template: str = "esg-compliance"
    include_source_citations: bool = True
    max_context_tokens: int = 3000
    enable_guardrails: bool = True

    @classmethod
    def from_settings(cls, retrieval: RetrievalConfig, generation: GenerationConfig) -> "ChainConfig":
        return cls(
            top_k=retrieval.top_k,
            min_similarity=retrieval.min_similarity,
            enable_reranking=retrieval.enable_reranking,
            rerank_boost=retrieval.rerank_boost,
            prompt_template=generation.prompt_template,
            include_source_citations=generation.include_source_citations,
            max_context_tokens=generation.max_context_tokens,
            enable_guardrails=generation.enable_guardrails,
        )

    @classmethod
    def for_compliance(cls, compliance: ComplianceConfig, generation: GenerationConfig) -> "ChainConfig":
        """Chain settings for the requirement questions of a compliance run."""
        return cls(
            top_k=compliance.top_k,
            min_similarity=compliance.min_similarity,
            enable_reranking=compliance.enable_reranking,
            rerank_boost=compliance.rerank_boost,
            prompt_template=compliance.prompt_template,
            include_source_citations=generation.include_source_citations,
            max_context_tokens=generation.max_context_tokens,
            enable_guardrails=generation.enable_guardrails,
        )


class RAGChain:
    """
    Retrieval-augmented question answering over the ESG corpus.

    Provider and retrieval failures surface as QueryFailed; an unknown
    template is rejected when the chain is built.
    """

    def __init__(
        self,
        vector_store: VectorStore,
        llm: LLMProvider,
        prompt_strategy: Optional[PromptStrategy] = None,
        config: Optional[ChainConfig] = None,
        codec: Optional[Codec] = None,
    ):
        """
        Initialize RAG chain.

        Args:
            vector_store: Retrieval backend
            llm: Language-model provider
            prompt_strategy: Template engine (built-in templates when omitted)
            config: Chain settings
            codec: Token codec for the context budget (character estimate when omitted)

        Raises:
            TemplateNotFound: If config.prompt_template is not registered
        """
        self.vector_store = vector_store
        self.llm = llm
        self.prompt_strategy = prompt_strategy or PromptStrategy()
        self.config = config or ChainConfig()
        self.prompt_strategy.registry.require(self.config.prompt_template)
        self.reranker = KeywordReranker(boost=self.config.rerank_boost)
        self.budget = TokenBudget(BudgetConfig(max_tokens=self.config.max_context_tokens), codec=codec)

    async def query(
        self,
        question: str,
        filters: Optional[Dict[str, Any]] = None,
        user_context: Optional[UserContext] = None,
    ) -> RAGResponse:
        """
        Answer a question from the retrieved documents.

        Args:
            question: User question
            filters: Metadata equality filter for retrieval
            user_context: Optional requester details added to the prompt

        Returns:
            RAGResponse with answer, sources and metadata

        Raises:
            QueryFailed: If retrieval or generation fails
        """
        start = time.perf_counter()
        logger.info(f"RAG query: {question!r}")

        try:
            results = await self.retrieve(question, filters)
            logger.info(f"Retrieved {len(results)} chunks")

            if not results:
                return self._empty_response(start)

            llm_response, context_chunks, validation = await self._generate(question, results, user_context)
            logger.info(f"Generated response ({llm_response.usage.total_tokens if llm_response.usage else 0} tokens)")

        except _PASSTHROUGH_ERRORS:
            raise
        except Exception as e:
            logger.error(f"RAG query failed: {e}")
            raise QueryFailed(question, str(e)) from e

        return RAGResponse(
            answer=llm_response.content,
            sources=self.format_sources(results),
            metadata=ResponseMetadata(
                retrieved_chunks=len(results),
                llm_model=llm_response.model,
                processing_time_ms=self._elapsed_ms(start),
                usage=llm_response.usage,
                context_chunks=context_chunks,
                validation=validation,
            ),
        )

    async def retrieve(self, question: str, filters: Optional[Dict[str, Any]] = None) -> List[SearchResult]:
        """Top-K chunks for the question, reranked when enabled."""
        results = await self.vector_store.search(
            question,
            top_k=self.config.top_k,
            min_similarity=self.config.min_similarity,
            filter=filters,
        )
        if self.config.enable_reranking:
            results = self.reranker.rerank(question, results)
        return results

    async def _generate(self, question: str, results: List[SearchResult], user_context: Optional[UserContext]):
        chunks = [RetrievedChunk.from_search_result(r) for r in results]
        selection = self.budget.select(chunks)

        context = PromptContext(question=question, retrieved_chunks=selection.selected, user_context=user_context)
        template_id = self.config.prompt_template
        prompt = self.prompt_strategy.generate_prompt(
            template_id, context, include_citation_instruction=self.config.include_source_citations
        )

        llm_response = await self.llm.generate(prompt.user_prompt, prompt.system_prompt)

        validation = None
        if self.config.enable_guardrails:
            content = self.prompt_strategy.apply_guardrails(llm_response.content, context)
            report = self.prompt_strategy.validate_response(content, template_id)
            if not report.is_valid:
                logger.warning(f"Response validation issues: {report.violations}")
            validation = report.to_dict()
            llm_response = LLMResponse(content=content, model=llm_response.model, usage=llm_response.usage)

        return llm_response, len(selection.selected), validation

    @staticmethod
    def format_sources(results: List[SearchResult]) -> List[SourceAttribution]:
        sources = []
        for result in results:
            metadata = result.metadata
            sources.append(SourceAttribution(
                id=result.id,
                filename=metadata.get("filename") or "Unknown",
                similarity=round_half_up(result.similarity, 3),
                snippet=truncate(result.content, SNIPPET_LENGTH),
                region=metadata.get("region") or None,
                organization=metadata.get("organization") or None,
                page_number=metadata.get("pageNumber") or None,
            ))
        return sources

    def _empty_response(self, start: float) -> RAGResponse:
        return RAGResponse(
            answer=NO_RESULTS_ANSWER,
            sources=[],
            metadata=ResponseMetadata(
                retrieved_chunks=0,
                llm_model=self.llm.model or "unknown",
                processing_time_ms=self._elapsed_ms(start),
            ),
        )

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)

    def get_config(self) -> Dict[str, Any]:
        """Chain configuration without provider secrets."""
        return {"llm": self.llm.describe(), **asdict(self.config)}
