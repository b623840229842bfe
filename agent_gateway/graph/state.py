"""
=============================================================================
LangGraph State Definition
=============================================================================

Defines the state schema for the agent pipeline.

STATE DESIGN NOTES:
-------------------
- query/context are the validated request inputs and never change
- task names the prompt branch chosen for the context
- messages is the chat sequence handed to the LLM
- raw_response is the unparsed LLM text (empty in mock mode)
- response is the final AgentResponse returned to the router
=============================================================================
"""

from typing import Any, TypedDict

from agent_gateway.api.schemas import AgentResponse


class Message(TypedDict):
    """A single chat message sent upstream."""

    role: str  # "system" or "user"
    content: str


class AgentState(TypedDict, total=False):
    """State passed through all nodes of the agent pipeline."""

    # Input
    query: str
    context: dict[str, Any] | None

    # Prompt construction
    task: str
    messages: list[Message]

    # LLM output
    raw_response: str

    # Final output
    response: AgentResponse
