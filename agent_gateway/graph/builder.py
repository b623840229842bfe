"""
=============================================================================
LangGraph Builder
=============================================================================

Constructs the agent pipeline graph.

GRAPH STRUCTURE:
----------------
START -> build_prompt -+-> call_llm -> parse_reply -> END
                       |
                       +-> mock_plan -> END   (no LLM credential configured)

No checkpointer is used: every request is independent and nothing is
persisted across requests or restarts.
=============================================================================
"""

import logging
from typing import Any

from langgraph.graph import END, START, StateGraph
from langgraph.graph.state import CompiledStateGraph

from agent_gateway.api.schemas import AgentResponse
from agent_gateway.errors import InternalError
from agent_gateway.graph.nodes import AgentNodes
from agent_gateway.graph.state import AgentState

logger = logging.getLogger(__name__)


def build_graph(nodes: AgentNodes) -> CompiledStateGraph:
    """Build and compile the agent pipeline graph."""
    logger.info("[GRAPH] Building agent pipeline graph")

    builder = StateGraph(AgentState)

    builder.add_node("build_prompt", nodes.build_prompt)
    builder.add_node("call_llm", nodes.call_llm)
    builder.add_node("parse_reply", nodes.parse_reply)
    builder.add_node("mock_plan", nodes.mock_plan)

    builder.add_edge(START, "build_prompt")
    builder.add_conditional_edges(
        "build_prompt",
        nodes.route,
        {"call_llm": "call_llm", "mock_plan": "mock_plan"},
    )
    builder.add_edge("call_llm", "parse_reply")
    builder.add_edge("parse_reply", END)
    builder.add_edge("mock_plan", END)

    graph = builder.compile()

    logger.info(
        f"[GRAPH] Graph compiled successfully (mode={'mock' if nodes.mock_mode else 'llm'})"
    )
    return graph


class AgentPipeline:
    """Runs one agent request through the compiled graph."""

    def __init__(self, nodes: AgentNodes):
        self.nodes = nodes
        self.graph = build_graph(nodes)

    @property
    def mock_mode(self) -> bool:
        return self.nodes.mock_mode

    async def run(self, query: str, context: dict[str, Any] | None = None) -> AgentResponse:
        result = await self.graph.ainvoke({"query": query, "context": context})
        response = result.get("response")
        if response is None:
            raise InternalError("Agent pipeline finished without a response")
        return response
