"""LLM package: provider registry, completion router, and the LLM agent runner."""

from agentshell.llm.providers import ProviderRegistry
from agentshell.llm.router import LLMRouter

__all__ = ["LLMRouter", "ProviderRegistry"]
