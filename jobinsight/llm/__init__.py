"""LLM client module."""

from jobinsight.llm.client import LLMClient, OpenAICompatibleClient
from jobinsight.llm.models import GenerationResult, Message, Role
from jobinsight.llm.prompts import MarketInsightPromptTemplate, PromptTemplate

__all__ = [
    "GenerationResult",
    "LLMClient",
    "MarketInsightPromptTemplate",
    "Message",
    "OpenAICompatibleClient",
    "PromptTemplate",
    "Role",
]
