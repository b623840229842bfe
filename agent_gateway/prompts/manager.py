"""
=============================================================================
Prompt Manager - Flight Planning Message Construction
=============================================================================

Builds the ordered chat message sequence sent to the LLM for a query and
its optional interaction context.

CONTEXT BRANCHES:
-----------------
- no context                 -> base system prompt + raw query
- {"userFeedback": ...}      -> base prompt + feedback reconciliation
- {"task": "handle_error"}   -> base prompt + error details / remediation
- {"task": "summarize"}      -> narrow summarization prompt + first N results
- any other task             -> base system prompt + raw query

build() is a pure function of (query, context). There is no hidden state,
which keeps the output byte-identical for identical requests.
=============================================================================
"""

import json
import logging
from typing import Any

from agent_gateway.errors import ValidationError

logger = logging.getLogger(__name__)

SUMMARY_RESULT_LIMIT = 10

TASK_PLAN = "plan"
TASK_FEEDBACK = "feedback"
TASK_HANDLE_ERROR = "handle_error"
TASK_SUMMARIZE = "summarize"

SYSTEM_PROMPT = """You are an advanced multi-step flight planning agent. Analyze the user's request.

First, think step-by-step about how to fulfill the request, including required searches.
Enclose your thoughts in <thinking>...</thinking> tags.

Second, create a structured plan as a JSON object within <plan>...</plan> tags.
The plan should contain a list of steps, each with an 'action' and necessary 'parameters'.

Available actions:
- 'generate_search_queries': Create specific search parameters based on natural language input
- 'execute_flight_fetch': Request flight data using the generated search parameters
- 'summarize_results': Analyze and summarize the flight results

For flight parameters, include:
- origin: Airport code or list of airport codes (e.g., 'JFK' or ['JFK', 'LGA', 'EWR'])
- dest: Airport code or list of airport codes (e.g., 'LHR' or ['LHR', 'LGW'])
- departureDateRange: Use descriptive date ranges like "next-weekend", "this-month", or specific dates in "YYYY-MM-DD" format
- returnDateRange: Same format as departure dates, or use "one-way" for one-way flights
- stayDuration: Number of days for the stay (if departure and return date are not explicitly specified)
- departureDateFlexibility: Number of days flexibility around departure date (e.g., 2 means +/-2 days)
- returnDateFlexibility: Number of days flexibility around return date
- numAdults: Number of adult passengers
- numChildren: Number of child passengers
- numInfants: Number of infant passengers
- cabinClass: Cabin class (e.g., 'economy', 'premium_economy', 'business', 'first')
- maxPrice: Maximum price in dollars

For example:
User: "I need a flight from NYC to London next weekend, returning the following weekend"

<thinking>
I need to find flights from NYC to London. NYC could refer to any of the NYC airports (JFK, LGA, EWR), so I should consider all of them. "Next weekend" likely refers to the upcoming Saturday and Sunday.
</thinking>

<plan>
{
  "steps": [
    {
      "action": "generate_search_queries",
      "parameters": {
        "origins": ["JFK", "LGA", "EWR"],
        "destinations": ["LHR", "LGW"],
        "departureDateRange": "next-weekend",
        "returnDateRange": "following-weekend",
        "numAdults": 1,
        "numChildren": 0,
        "numInfants": 0,
        "cabinClass": "economy"
      }
    },
    {
      "action": "execute_flight_fetch",
      "parameters": {
        "useExtension": true
      }
    },
    {
      "action": "summarize_results",
      "parameters": {
        "sortBy": "price",
        "limit": 20
      }
    }
  ]
}
</plan>

Respond ONLY with the thinking and plan tags. Be comprehensive in your thinking analysis and create specific, detailed plans."""

SUMMARY_SYSTEM_PROMPT = (
    "You are a helpful flight assistant. You are given a list of flight results and need "
    "to summarize the key insights. Focus on price ranges, best deals, recommended options, "
    "and any notable patterns. Provide a concise summary in 2-3 paragraphs."
)


def conversation_task(context: dict[str, Any] | None) -> str:
    """Name the prompt branch a context selects."""
    if not context:
        return TASK_PLAN
    if context.get("userFeedback"):
        return TASK_FEEDBACK
    task = context.get("task")
    if task == TASK_HANDLE_ERROR:
        return TASK_HANDLE_ERROR
    if task == TASK_SUMMARIZE:
        return TASK_SUMMARIZE
    if task is not None:
        # TODO: reject unknown tasks with a 400 once clients stop sending legacy values
        logger.debug(f"[PROMPT] Unknown context task={task!r}, using base prompt")
    return TASK_PLAN


class PromptBuilder:
    """Deterministic message builder for the flight planning agent."""

    def __init__(self, summary_result_limit: int = SUMMARY_RESULT_LIMIT):
        self.summary_result_limit = summary_result_limit
        self._system_prompt = self._normalize(SYSTEM_PROMPT)

    @property
    def system_prompt(self) -> str:
        return self._system_prompt

    @staticmethod
    def _normalize(text: str) -> str:
        """Strip BOM and trailing whitespace so templates render identically."""
        if text.startswith("\ufeff"):
            text = text[1:]
        return "\n".join(line.rstrip() for line in text.splitlines())

    @staticmethod
    def _message(role: str, content: str) -> dict[str, str]:
        return {"role": role, "content": content}

    def build(self, query: str, context: dict[str, Any] | None = None) -> list[dict[str, str]]:
        """Build the message sequence for one agent request."""
        task = conversation_task(context)

        if task == TASK_FEEDBACK:
            feedback = context["userFeedback"]
            return [
                self._message(
                    "system",
                    f"{self._system_prompt}\n\n"
                    f'The user provided feedback on previous results: "{feedback}". '
                    "Adjust your plan to address this feedback.",
                ),
                self._message("user", f"Original query: {query}\nFeedback: {feedback}"),
            ]

        if task == TASK_HANDLE_ERROR:
            error_details = context.get("errorDetails", "")
            if not isinstance(error_details, str):
                error_details = json.dumps(error_details, sort_keys=True, default=str)
            return [
                self._message(
                    "system",
                    f"{self._system_prompt}\n\n"
                    f'An error occurred during execution: "{error_details}". '
                    "Suggest how to resolve this issue or provide an alternative approach.",
                ),
                self._message("user", query),
            ]

        if task == TASK_SUMMARIZE:
            results = context.get("results")
            if results is None:
                results = []
            if not isinstance(results, list):
                raise ValidationError(
                    "context.results must be an array",
                    details={"field": "context.results"},
                )
            shown = results[: self.summary_result_limit]
            return [
                self._message("system", SUMMARY_SYSTEM_PROMPT),
                self._message(
                    "user",
                    f'Here are the flight results for the query "{query}":\n\n'
                    f"{json.dumps(shown, indent=2, default=str)}\n\n"
                    "Please summarize these results and provide recommendations.",
                ),
            ]

        return [
            self._message("system", self._system_prompt),
            self._message("user", query),
        ]
