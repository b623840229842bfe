# Graph package
from agent_gateway.graph.builder import AgentPipeline, build_graph
from agent_gateway.graph.nodes import AgentNodes, mock_response
from agent_gateway.graph.state import AgentState, Message

__all__ = ["AgentPipeline", "AgentNodes", "build_graph", "mock_response", "AgentState", "Message"]
