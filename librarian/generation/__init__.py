"""
Answer generation module for RAG pipeline.

- Prompt assembly from retrieved context strings
- Answer generation through an injected text-completion function
"""

from .config import GenerationConfig
from .generator import AnswerGenerator, Completion, GeneratedAnswer
from .prompts import SYSTEM_PROMPT, build_prompt

__all__ = [
    "AnswerGenerator",
    "Completion",
    "GeneratedAnswer",
    "GenerationConfig",
    "SYSTEM_PROMPT",
    "build_prompt",
]
