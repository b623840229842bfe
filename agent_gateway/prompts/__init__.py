# Prompts package
from agent_gateway.prompts.manager import PromptBuilder, conversation_task

__all__ = ["PromptBuilder", "conversation_task"]
