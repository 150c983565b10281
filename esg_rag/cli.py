"""
ESG RAG command line.

Usage:
    esg-rag process [--corpus data/esg_corpus]
    esg-rag search "scope 3 emissions" --top-k 5 --region EU
    esg-rag ask "What are the TCFD governance disclosure requirements?"
    esg-rag analyze report.txt --standard TCFD --standard ESRS --depth detailed
    esg-rag stats
    esg-rag reset --yes

All commands accept --config to point at a YAML file (configs/rag.yaml by default).
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

from .common.config import RAGSettings, load_config
from .common.utils import init_logger
from .compliance import ComplianceAnalysisConfig, ComplianceAnalyzer
from .exceptions import ESGRagError
from .rag.chain import ChainConfig, RAGChain
from .rag.chunking import ChunkingOptions, TextChunker
from .rag.embeddings import EmbeddingsGenerator
from .rag.generation import create_llm_provider
from .rag.ingestion import DocumentProcessor
from .rag.retrieval import VectorStore, create_record_store


logger = logging.getLogger(__name__)


def build_vector_store(settings: RAGSettings, generator: Optional[EmbeddingsGenerator] = None) -> VectorStore:
    generator = generator or EmbeddingsGenerator.from_config(settings.embeddings)
    return VectorStore(
        generator,
        record_store=create_record_store(settings.vector_store),
        working_set_limit=settings.vector_store.working_set_limit,
    )


def build_chain(settings: RAGSettings, vector_store: VectorStore, for_compliance: bool = False) -> RAGChain:
    """RAG chain from settings; compliance runs use the compliance retrieval and LLM settings."""
    if for_compliance:
        config = ChainConfig.for_compliance(settings.compliance, settings.generation)
        llm = create_llm_provider(
            settings.llm,
            temperature=settings.compliance.temperature,
            max_tokens=settings.compliance.max_tokens,
        )
    else:
        config = ChainConfig.from_settings(settings.retrieval, settings.generation)
        llm = create_llm_provider(settings.llm)
    return RAGChain(vector_store, llm, config=config)


def _print_json(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _header(title: str) -> None:
    print("=" * 60)
    print(title)
    print("=" * 60)


async def cmd_process(args, settings: RAGSettings) -> int:
    _header("ESG RAG: Document Processing")
    async with EmbeddingsGenerator.from_config(settings.embeddings) as generator:
        vector_store = build_vector_store(settings, generator)
        with TextChunker(encoding=settings.chunking.encoding,
                         options=ChunkingOptions.from_config(settings.chunking)) as chunker:
            processor = DocumentProcessor(chunker, generator, vector_store, settings.ingestion)
            stats = await processor.process_corpus(args.corpus)
    _print_json(stats.to_dict())
    return 1 if stats.errors and not stats.documents_processed else 0


async def cmd_search(args, settings: RAGSettings) -> int:
    filters: Dict[str, Any] = {}
    if args.region:
        filters["region"] = args.region
    if args.organization:
        filters["organization"] = args.organization

    async with EmbeddingsGenerator.from_config(settings.embeddings) as generator:
        vector_store = build_vector_store(settings, generator)
        results = await vector_store.search(
            args.query,
            top_k=args.top_k or settings.retrieval.top_k,
            min_similarity=settings.retrieval.min_similarity if args.min_similarity is None else args.min_similarity,
            filter=filters or None,
        )
    _print_json([result.to_dict() for result in results])
    return 0


async def cmd_ask(args, settings: RAGSettings) -> int:
    async with EmbeddingsGenerator.from_config(settings.embeddings) as generator:
        chain = build_chain(settings, build_vector_store(settings, generator))
        try:
            response = await chain.query(args.question)
        finally:
            chain.llm.dispose()
    _print_json(response.to_dict())
    return 0


async def cmd_analyze(args, settings: RAGSettings) -> int:
    report_path = Path(args.report)
    if not report_path.exists():
        logger.error(f"Report file not found: {report_path}")
        return 1
    content = report_path.read_text(encoding="utf-8", errors="ignore")

    config = ComplianceAnalysisConfig(
        standards=args.standard,
        analysis_depth=args.depth,
        include_recommendations=not args.no_recommendations,
        generate_analytics=not args.no_analytics,
    )

    async with EmbeddingsGenerator.from_config(settings.embeddings) as generator:
        chain = build_chain(settings, build_vector_store(settings, generator), for_compliance=True)
        analyzer = ComplianceAnalyzer(chain, settings=settings.compliance)
        try:
            result = await analyzer.analyze_report(content, report_path.name, config)
        finally:
            chain.llm.dispose()

    if args.output:
        Path(args.output).parent.mkdir(parents=True, exist_ok=True)
        with open(args.output, "w", encoding="utf-8") as f:
            json.dump(result.to_dict(), f, indent=2, ensure_ascii=False)
        logger.info(f"Analysis written to {args.output}")
    else:
        print(result.summary)
        _print_json(result.to_dict())
    return 0


async def cmd_stats(args, settings: RAGSettings) -> int:
    vector_store = VectorStore(
        None,
        record_store=create_record_store(settings.vector_store),
        working_set_limit=settings.vector_store.working_set_limit,
    )
    _print_json({"backend": settings.vector_store.backend, **vector_store.stats()})
    return 0


async def cmd_reset(args, settings: RAGSettings) -> int:
    if not args.yes:
        logger.error("Refusing to reset the vector store without --yes")
        return 1
    vector_store = VectorStore(None, record_store=create_record_store(settings.vector_store))
    vector_store.reset()
    _print_json(vector_store.stats())
    return 0


COMMANDS = {
    "process": cmd_process,
    "search": cmd_search,
    "ask": cmd_ask,
    "analyze": cmd_analyze,
    "stats": cmd_stats,
    "reset": cmd_reset,
}


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="esg-rag", description="ESG regulatory RAG and compliance analysis")
    parser.add_argument("--config", default=None, help="Path to configuration file")
    parser.add_argument("--log-level", default=None, help="Override logging.level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    process = subparsers.add_parser("process", help="Chunk, embed and store the text corpus")
    process.add_argument("--corpus", default=None, help="Corpus root (ingestion.corpus_dir by default)")

    search = subparsers.add_parser("search", help="Similarity search over stored chunks")
    search.add_argument("query")
    search.add_argument("--top-k", type=int, default=None)
    search.add_argument("--min-similarity", type=float, default=None)
    search.add_argument("--region", default=None)
    search.add_argument("--organization", default=None)

    ask = subparsers.add_parser("ask", help="Answer a question from the corpus")
    ask.add_argument("question")

    analyze = subparsers.add_parser("analyze", help="Analyze a report against ESG standards")
    analyze.add_argument("report", help="Plain-text report file")
    analyze.add_argument("--standard", action="append", required=True,
                         help="Standard to analyze against (repeatable)")
    analyze.add_argument("--depth", choices=["basic", "detailed", "comprehensive"], default="detailed")
    analyze.add_argument("--no-recommendations", action="store_true")
    analyze.add_argument("--no-analytics", action="store_true")
    analyze.add_argument("--output", default=None, help="Write the result JSON here")

    subparsers.add_parser("stats", help="Show vector store statistics")

    reset = subparsers.add_parser("reset", help="Delete every stored record")
    reset.add_argument("--yes", action="store_true", help="Confirm the reset")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        settings = load_config(args.config)
    except (ESGRagError, FileNotFoundError) as e:
        init_logger("esg_rag")
        logger.error(f"Failed to load configuration: {e}")
        return 2

    if args.log_level:
        settings.logging.level = args.log_level
    init_logger("esg_rag", log_file=settings.logging.log_file, level=settings.logging.level)

    try:
        return asyncio.run(COMMANDS[args.command](args, settings))
    except ESGRagError as e:
        logger.error(str(e))
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        return 130


if __name__ == "__main__":
    sys.exit(main())
