"""LLM provider abstraction. The LLM scores documents; it never drives the pipeline."""

from pitchflow.llm.openai_provider import OpenAIProvider
from pitchflow.llm.provider import LLMProvider
from pitchflow.llm.router import ModelRole, get_llm_provider

__all__ = ["LLMProvider", "ModelRole", "OpenAIProvider", "get_llm_provider"]
