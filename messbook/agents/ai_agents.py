"""
AI Agents for the Mess Ledger

CRITICAL BOUNDARIES:

INSIGHT AGENT:
   - CAN: Turn an already computed MessSummary into a short, friendly note
   - CANNOT: Compute, correct or persist any figure
   - CANNOT: Block or fail the summary (it runs separately, after it)
   - MUST: Fall back to a static message when the model is unavailable

The LLM is a COMMENTATOR, not an ACCOUNTANT.
Every number it sees comes from the balance engine.
"""

from typing import Any, Optional

import google.generativeai as genai
import structlog
from pydantic import BaseModel, Field

from messbook.config import GeminiSettings, get_settings
from messbook.formatting import format_currency
from messbook.models.ledger import MessSummary

logger = structlog.get_logger(__name__)


NO_API_KEY_MESSAGE = "Set a Gemini API key to get AI tips for your mess."
EMPTY_LEDGER_MESSAGE = "Add members and expenses to get a tip about your mess."
EMPTY_RESPONSE_MESSAGE = "Your mess accounts look fine. Take care! 😊"
SERVICE_ERROR_MESSAGE = "Your accounts are fine, but the AI is busy right now. Try again later. 👍"


class InsightResponse(BaseModel):
    """
    Text shown to the user, and whether it came from the model.

    `reason` names the fallback path when `used_fallback` is True.
    """

    text: str
    used_fallback: bool = False
    reason: Optional[str] = Field(
        default=None,
        description="no_api_key, empty_ledger, service_error or empty_response"
    )


class InsightAgent:
    """
    Generates a 1-2 sentence piece of advice about the mess finances.

    RESPONSIBILITIES:
    - Summarize totals and per-member costs into a prompt
    - Ask Gemini for a warm, short note

    BOUNDARIES:
    - NEVER raises: every failure becomes a fallback message
    - NEVER changes the summary it was given
    """

    def __init__(
        self,
        settings: Optional[GeminiSettings] = None,
        model: Any = None,
    ):
        """
        Initialize the agent.

        Args:
            settings: Gemini settings. Loaded from the environment if None.
            model: Pre-built model exposing `generate_content_async`.
                  If None, one is configured from the settings when an API
                  key is present.
        """
        self._settings = settings or get_settings().gemini
        self._model = model
        if self._model is None and self._settings.is_configured:
            self._configure_genai()

    def _configure_genai(self):
        """Configure Google Generative AI."""
        genai.configure(api_key=self._settings.api_key)
        self._model = genai.GenerativeModel(
            model_name=self._settings.model_name,
            generation_config={
                "temperature": self._settings.temperature,
                "max_output_tokens": self._settings.max_tokens,
            }
        )

    @property
    def is_available(self) -> bool:
        return self._model is not None

    def build_prompt(
        self,
        summary: MessSummary,
        currency_code: str = "SAR",
    ) -> str:
        """Render the summary into the prompt sent to the model."""
        def money(amount: float) -> str:
            return format_currency(amount, currency_code)

        member_lines = "\n".join(
            f"- {b.member.name}: total cost {money(b.total_cost)} "
            f"(personal {money(b.personal_total)}), "
            f"paid {money(b.paid)}, balance {format_currency(b.net_balance.value, currency_code, signed=True)}"
            for b in summary.member_balances
        ) or "- (no members)"

        return f"""Analyze this mess (shared apartment) financial status and give VERY FRIENDLY, warm and helpful advice in {self._settings.insight_language}.
The mess follows a "total bill" system: shared market costs are split among members present on each purchase date, personal items are charged to one member, and payments are credited to the payer.

Total mess market expense: {money(summary.total_shared_expense)}
Shared cost per current member: {money(summary.average_per_person)}
Total personal expense: {money(summary.total_personal_expense)}
Total payments: {money(summary.total_payments)}

Members (a positive balance means the mess owes them):
{member_lines}

Use emojis. Sound like a helpful friend. Mention if someone is spending too much on personal things or if the mess budget is doing great.
Use ONLY the figures above. Keep it to 1-2 sentences."""

    async def generate(
        self,
        summary: MessSummary,
        currency_code: str = "SAR",
    ) -> InsightResponse:
        """Generate an insight, reporting which path produced it."""
        if not self.is_available:
            return InsightResponse(
                text=NO_API_KEY_MESSAGE,
                used_fallback=True,
                reason="no_api_key",
            )

        recorded = (
            summary.total_shared_expense,
            summary.total_personal_expense,
            summary.total_payments,
            summary.total_breakfast_payments,
        )
        if not any(recorded):
            return InsightResponse(
                text=EMPTY_LEDGER_MESSAGE,
                used_fallback=True,
                reason="empty_ledger",
            )

        prompt = self.build_prompt(summary, currency_code)
        try:
            response = await self._model.generate_content_async(prompt)
            text = (response.text or "").strip()
        except Exception as e:
            logger.warning("insight_generation_failed", error=str(e))
            return InsightResponse(
                text=SERVICE_ERROR_MESSAGE,
                used_fallback=True,
                reason="service_error",
            )

        if not text:
            return InsightResponse(
                text=EMPTY_RESPONSE_MESSAGE,
                used_fallback=True,
                reason="empty_response",
            )

        return InsightResponse(text=text)

    async def generate_insight(
        self,
        summary: MessSummary,
        currency_code: str = "SAR",
    ) -> str:
        """Generate the insight text. Never raises."""
        return (await self.generate(summary, currency_code)).text
