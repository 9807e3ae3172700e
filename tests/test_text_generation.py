"""
Tests for the Gemini-backed and offline text generators.
"""

import asyncio
from unittest.mock import AsyncMock, Mock, patch

import pytest

from dayoff.circuit_breaker import CircuitBreaker, CircuitBreakerOpenError, CircuitState
from dayoff.config import settings
from dayoff.errors import ExternalServiceFailure
from dayoff.text_generation import (
    GeminiTextGenerator,
    MockTextGenerator,
    build_text_generator,
)


def _client(text="Generated text", side_effect=None):
    client = Mock()
    client.aio.models.generate_content = AsyncMock(
        return_value=Mock(text=text), side_effect=side_effect
    )
    return client


class TestGeminiTextGenerator:
    def test_draft_letter_prompt_and_config(self):
        """Test letter prompt, model and temperature."""
        client = _client("Respected Principal, ...")
        generator = GeminiTextGenerator(client=client, model="test-model")

        letter = asyncio.run(generator.draft_letter("High fever", "Medical Leave", 3))

        assert letter == "Respected Principal, ..."
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert kwargs["model"] == "test-model"
        assert "High fever" in kwargs["contents"]
        assert '"Medical Leave" leave for 3 days' in kwargs["contents"]
        assert kwargs["config"].temperature == settings.letter_temperature

    def test_summarize_prompt_and_config(self):
        """Test summary prompt, temperature and stripping."""
        client = _client("  Student needs medical leave.  ")
        generator = GeminiTextGenerator(client=client, model="test-model")

        summary = asyncio.run(generator.summarize("High fever", "Student request for Medical Leave"))

        assert summary == "Student needs medical leave."
        kwargs = client.aio.models.generate_content.await_args.kwargs
        assert "ONE short sentence" in kwargs["contents"]
        assert "Student request for Medical Leave" in kwargs["contents"]
        assert kwargs["config"].temperature == settings.summary_temperature

    @pytest.mark.parametrize("text", ["", None, "   "])
    def test_empty_response_is_failure(self, text):
        """Test empty model output raises."""
        generator = GeminiTextGenerator(client=_client(text), model="m")

        with pytest.raises(ExternalServiceFailure):
            asyncio.run(generator.summarize("reason", "context"))

    def test_repeated_failures_open_circuit(self):
        """Test repeated client errors open the breaker."""
        client = _client(side_effect=ConnectionError("unreachable"))
        breaker = CircuitBreaker(failure_threshold=2, timeout=60, name="test")
        generator = GeminiTextGenerator(client=client, model="m", circuit_breaker=breaker)

        for _ in range(2):
            with pytest.raises(ConnectionError):
                asyncio.run(generator.draft_letter("r", "Other", 1))

        assert breaker.state == CircuitState.OPEN
        with pytest.raises(CircuitBreakerOpenError):
            asyncio.run(generator.draft_letter("r", "Other", 1))
        assert client.aio.models.generate_content.await_count == 2
        assert generator.get_circuit_breaker_state()["state"] == "open"


class TestMockTextGenerator:
    def test_letter_mentions_inputs(self):
        """Test offline letter includes the leave details."""
        letter = asyncio.run(MockTextGenerator().draft_letter("Sister's wedding.", "Family Event", 1))
        assert "family event" in letter
        assert "1 day." in letter
        assert "Sister's wedding." in letter

    def test_summary_uses_first_sentence(self):
        """Test offline summary is the first sentence."""
        summary = asyncio.run(
            MockTextGenerator().summarize("High fever since Monday. Doctor advised rest.", "ctx")
        )
        assert summary == "Applicant requests leave: High fever since Monday."

    def test_no_circuit_breaker(self):
        """Test offline generator reports no breaker."""
        assert MockTextGenerator().get_circuit_breaker_state() is None


class TestBuildTextGenerator:
    def test_offline_without_api_key(self, monkeypatch):
        """Test offline generator is used without an API key."""
        monkeypatch.setattr(settings, "gemini_api_key", None)
        assert isinstance(build_text_generator(), MockTextGenerator)

    def test_gemini_with_api_key(self, monkeypatch):
        """Test Gemini generator is used with an API key."""
        monkeypatch.setattr(settings, "gemini_api_key", "test-key")
        with patch("dayoff.text_generation.genai.Client") as client_cls:
            generator = build_text_generator()

        assert isinstance(generator, GeminiTextGenerator)
        client_cls.assert_called_once_with(api_key="test-key")
