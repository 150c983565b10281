"""
RAG pipeline for the ESG regulatory corpus.

chunking → embeddings → retrieval → prompts → generation, tied together by
RAGChain, with DocumentProcessor feeding the vector store.
"""

from .chain import ChainConfig, NO_RESULTS_ANSWER, RAGChain

__all__ = ["ChainConfig", "NO_RESULTS_ANSWER", "RAGChain"]
