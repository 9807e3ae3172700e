"""
Text generation collaborator.

Drafts a formal leave letter and a one-line reviewer summary from the
applicant's free-text reason. Backed by Gemini through google-genai, with
a deterministic offline generator used when no API key is configured.

Failures surface as exceptions here; the submission builder owns the
fail-open fallback.
"""

import logging
from abc import ABC, abstractmethod

from google import genai
from google.genai import types

from dayoff.circuit_breaker import CircuitBreaker
from dayoff.config import settings
from dayoff.errors import ExternalServiceFailure
from dayoff.observability import trace_span

logger = logging.getLogger(__name__)


LETTER_PROMPT = """Draft a formal, concise college leave application letter.
Context: Applicant is applying for "{leave_type}" leave for {days} days.
Key points from applicant: "{reason}".
Tone: Academic, respectful, professional.
Format: Only return the letter body, no placeholder headers like [Date] [Name]."""

SUMMARY_PROMPT = """As a college administrator assistant, summarize this leave request reason in ONE short sentence.
Reason: {reason}
Drafted Letter: {context}
Focus on identifying the core necessity."""


class TextGenerator(ABC):
    """Interface the submission builder depends on."""

    @abstractmethod
    async def draft_letter(self, reason: str, leave_type: str, duration_days: int) -> str:
        """Return the body of a formal leave letter."""

    @abstractmethod
    async def summarize(self, reason: str, letter_or_context: str) -> str:
        """Return a one-sentence summary for reviewers."""

    def get_circuit_breaker_state(self) -> dict | None:
        return None


class GeminiTextGenerator(TextGenerator):
    """
    Gemini-backed generator.

    Every call goes through a circuit breaker so a failing backend stops
    being called until it has had time to recover.
    """

    def __init__(
        self,
        client: genai.Client | None = None,
        model: str | None = None,
        circuit_breaker: CircuitBreaker | None = None,
    ):
        self.client = client or genai.Client(api_key=settings.gemini_api_key)
        self.model = model or settings.genai_model
        self.circuit_breaker = circuit_breaker or CircuitBreaker(
            failure_threshold=settings.circuit_breaker_failure_threshold,
            timeout=settings.circuit_breaker_timeout,
            name="TextGenerationCircuitBreaker",
        )

    async def _generate(self, contents: str, temperature: float) -> str:
        response = await self.client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=types.GenerateContentConfig(temperature=temperature),
        )
        text = (response.text or "").strip()
        if not text:
            raise ExternalServiceFailure("Model returned an empty response")
        return text

    async def draft_letter(self, reason: str, leave_type: str, duration_days: int) -> str:
        prompt = LETTER_PROMPT.format(leave_type=leave_type, days=duration_days, reason=reason)
        with trace_span("draft_letter", model=self.model, days=duration_days):
            return await self.circuit_breaker.call_async(
                self._generate, prompt, settings.letter_temperature
            )

    async def summarize(self, reason: str, letter_or_context: str) -> str:
        prompt = SUMMARY_PROMPT.format(reason=reason, context=letter_or_context)
        with trace_span("summarize", model=self.model):
            return await self.circuit_breaker.call_async(
                self._generate, prompt, settings.summary_temperature
            )

    def get_circuit_breaker_state(self) -> dict:
        return self.circuit_breaker.get_state()


class MockTextGenerator(TextGenerator):
    """Offline generator producing deterministic text from the inputs."""

    async def draft_letter(self, reason: str, leave_type: str, duration_days: int) -> str:
        unit = "day" if duration_days == 1 else "days"
        return (
            f"I respectfully request {leave_type.lower()} for {duration_days} {unit}. "
            f"{reason.strip()} I will ensure that any missed work is completed on my return."
        )

    async def summarize(self, reason: str, letter_or_context: str) -> str:
        first_sentence = reason.strip().split(".")[0].strip()
        return f"Applicant requests leave: {first_sentence}."


def build_text_generator() -> TextGenerator:
    """Gemini when an API key is configured, otherwise the offline generator."""
    if settings.gemini_api_key:
        logger.info(f"Using Gemini text generation model={settings.genai_model}")
        return GeminiTextGenerator()
    logger.warning("GEMINI_API_KEY not set, using offline text generation")
    return MockTextGenerator()
