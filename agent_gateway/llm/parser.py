"""
=============================================================================
LLM Response Parser
=============================================================================

Extracts the two tagged sections the system prompt asks for:

    <thinking> free-text reasoning </thinking>
    <plan> {"steps": [...]} </plan>

OUTCOMES:
---------
- thinking tag missing      -> thinking == ""
- plan tag missing          -> plan is None
- plan present but not JSON -> UnprocessablePlanError (never coerced)

Parsing is pure: the same text always yields the same result.
=============================================================================
"""

import json
import logging
import re

from agent_gateway.api.schemas import AgentResponse
from agent_gateway.errors import UnprocessablePlanError

logger = logging.getLogger(__name__)

THINKING_PATTERN = re.compile(r"<thinking>(.*?)</thinking>", re.DOTALL)
PLAN_PATTERN = re.compile(r"<plan>(.*?)</plan>", re.DOTALL)


def extract_section(pattern: re.Pattern[str], raw_text: str) -> str | None:
    """Return the stripped body of the first match, or None if absent."""
    match = pattern.search(raw_text)
    if match is None:
        return None
    return match.group(1).strip()


def parse_plan(plan_text: str) -> dict:
    try:
        plan = json.loads(plan_text)
    except json.JSONDecodeError as e:
        logger.warning(f"[PARSER] Failed to parse plan JSON: {e}")
        raise UnprocessablePlanError(
            details={"reason": str(e), "plan_excerpt": plan_text[:200]}
        ) from e

    if not isinstance(plan, dict):
        raise UnprocessablePlanError(
            details={
                "reason": f"plan must be a JSON object, got {type(plan).__name__}",
                "plan_excerpt": plan_text[:200],
            }
        )
    return plan


def parse(raw_text: str) -> AgentResponse:
    """Turn a raw LLM reply into an AgentResponse."""
    thinking = extract_section(THINKING_PATTERN, raw_text) or ""

    plan_text = extract_section(PLAN_PATTERN, raw_text)
    plan = parse_plan(plan_text) if plan_text is not None else None

    if plan is None:
        logger.debug("[PARSER] No <plan> section in reply")

    return AgentResponse(thinking=thinking, plan=plan)
