"""AI Agents package."""

from messbook.agents.ai_agents import (
    EMPTY_LEDGER_MESSAGE,
    EMPTY_RESPONSE_MESSAGE,
    NO_API_KEY_MESSAGE,
    SERVICE_ERROR_MESSAGE,
    InsightAgent,
    InsightResponse,
)

__all__ = [
    "EMPTY_LEDGER_MESSAGE",
    "EMPTY_RESPONSE_MESSAGE",
    "NO_API_KEY_MESSAGE",
    "SERVICE_ERROR_MESSAGE",
    "InsightAgent",
    "InsightResponse",
]
