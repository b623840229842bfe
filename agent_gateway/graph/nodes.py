"""
=============================================================================
LangGraph Node Implementations
=============================================================================

Node functions for the agent pipeline:
1. build_prompt - pure prompt construction from (query, context)
2. call_llm     - single upstream call, errors propagate as UpstreamError
3. parse_reply  - <thinking>/<plan> extraction
4. mock_plan    - static placeholder used when no credential is configured

Each node returns ONLY the state keys it updates.
=============================================================================
"""

import copy
import logging
from typing import Any

from agent_gateway.api.schemas import AgentResponse
from agent_gateway.config.langfuse import traced
from agent_gateway.graph.state import AgentState
from agent_gateway.llm.client import LLMClient
from agent_gateway.llm.parser import parse
from agent_gateway.prompts.manager import TASK_SUMMARIZE, PromptBuilder, conversation_task

logger = logging.getLogger(__name__)

MOCK_THINKING = (
    "[MOCK RESPONSE - no LLM credential configured] "
    "I need to find flights based on the user's query. Let me analyze what they're looking for."
)

MOCK_PLAN: dict[str, Any] = {
    "steps": [
        {
            "action": "generate_search_queries",
            "parameters": {
                "origins": ["JFK"],
                "destinations": ["LHR"],
                "departureDateRange": "next-week",
                "returnDateRange": "one-week-later",
                "numAdults": 1,
                "numChildren": 0,
                "numInfants": 0,
                "cabinClass": "economy",
            },
        },
        {
            "action": "execute_flight_fetch",
            "parameters": {"useExtension": True},
        },
        {
            "action": "summarize_results",
            "parameters": {"sortBy": "price", "limit": 5},
        },
    ],
    "mock": True,
}


def mock_response() -> AgentResponse:
    """A fresh copy of the placeholder response."""
    return AgentResponse(thinking=MOCK_THINKING, plan=copy.deepcopy(MOCK_PLAN))


class AgentNodes:
    """
    Node callables bound to their collaborators.

    llm_client is None in mock mode: the prompt is still built, then the
    graph routes to mock_plan instead of call_llm.
    """

    def __init__(self, prompt_builder: PromptBuilder, llm_client: LLMClient | None):
        self.prompt_builder = prompt_builder
        self.llm_client = llm_client

    @property
    def mock_mode(self) -> bool:
        return self.llm_client is None

    def route(self, state: AgentState) -> str:
        return "mock_plan" if self.mock_mode else "call_llm"

    @traced("build_prompt")
    async def build_prompt(self, state: AgentState) -> dict:
        context = state.get("context")
        task = conversation_task(context)
        messages = self.prompt_builder.build(state["query"], context)
        logger.info(f"[PIPELINE] task={task} messages={len(messages)}")
        return {"task": task, "messages": messages}

    @traced("call_llm")
    async def call_llm(self, state: AgentState) -> dict:
        raw = await self.llm_client.call(state["messages"])
        return {"raw_response": raw}

    @traced("parse_reply")
    async def parse_reply(self, state: AgentState) -> dict:
        raw = state.get("raw_response", "")
        response = parse(raw)

        if state.get("task") == TASK_SUMMARIZE:
            # Summaries are plain prose; keep the whole reply alongside any tags.
            response = response.model_copy(update={"summary": raw.strip()})

        logger.info(
            f"[PIPELINE] Parsed reply: thinking={len(response.thinking)} chars, "
            f"plan={'present' if response.plan is not None else 'absent'}"
        )
        return {"response": response}

    async def mock_plan(self, state: AgentState) -> dict:
        logger.warning("[PIPELINE] No LLM credential configured, returning mock response")
        return {"response": mock_response()}
