# LLM package
from agent_gateway.llm.client import LLMClient, build_chat_model
from agent_gateway.llm.parser import parse

__all__ = ["LLMClient", "build_chat_model", "parse"]
