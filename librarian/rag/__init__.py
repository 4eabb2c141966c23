"""
RAG (Retrieval-Augmented Generation) module.

Provides retrieval components for hybrid search over document fragments:
- BM25 sparse retrieval
- Dense vector retrieval over injected embeddings
- Hybrid search with min-max score blending
- Heuristic reranking
- Query expansion and multi-hop retrieval
"""

from .bm25 import BM25Index, SmoothedBM25
from .config import RetrievalConfig
from .dense import VectorIndex, similarity
from .embedding import EmbeddingProvider, SentenceTransformerEmbedder, SerializedEmbedder
from .engine import IndexSnapshot, SearchEngine
from .errors import ModelNotReadyError, RetrievalError
from .hybrid import HybridRanker, min_max_normalize
from .index import Fragment, load_fragments, save_fragments
from .multihop import HopState, MultiHopController, RetrievalSession, extract_follow_up_query
from .query_expander import QueryExpander
from .reranker import HeuristicReranker, score_signals
from .retriever import Retriever, ScoredResult, format_result
from .utils import tokenize

__all__ = [
    "Fragment",
    "load_fragments",
    "save_fragments",
    "BM25Index",
    "SmoothedBM25",
    "VectorIndex",
    "similarity",
    "EmbeddingProvider",
    "SentenceTransformerEmbedder",
    "SerializedEmbedder",
    "HybridRanker",
    "min_max_normalize",
    "HeuristicReranker",
    "score_signals",
    "QueryExpander",
    "HopState",
    "MultiHopController",
    "RetrievalSession",
    "extract_follow_up_query",
    "IndexSnapshot",
    "SearchEngine",
    "RetrievalConfig",
    "ModelNotReadyError",
    "RetrievalError",
    "Retriever",
    "ScoredResult",
    "format_result",
    "tokenize",
]
