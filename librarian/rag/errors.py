"""
Exceptions raised by the retrieval core.
"""

from __future__ import annotations


class RetrievalError(Exception):
    """Base class for retrieval failures."""


class ModelNotReadyError(RetrievalError):
    """Embedding was requested before the model finished loading."""

    def __init__(self, message: str = "Embedding model not loaded"):
        super().__init__(message)
