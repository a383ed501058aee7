"""
LectureSnap Backend - Note Generation Tests
=============================================

What:  NoteGenerator's model fallback loop against a stub provider.

What we test:
    ✅ Models are tried strictly in configured order; first success stops the loop
    ✅ Provider errors and malformed output both advance to the next model
    ✅ Exhaustion runs one diagnostic call and reports the last error
    ✅ "API key not valid" from the diagnostic becomes invalid_credentials
    ✅ A missing credential fails without calling any model
    ✅ One string or a list of images; data-URL prefixes are stripped
    ✅ Anything unexpected comes back as a server_error result, never raised
"""

import pytest

from app.config import PLACEHOLDER_API_KEY
from app.services.generation_service import (
    DIAGNOSTIC_PROMPT,
    LECTURE_PROMPT,
    GenerationConfig,
    NoteGenerator,
)

MODELS = ["gemini-2.0-flash", "gemini-1.5-flash", "gemini-1.5-pro"]
PAGE_ONE = "data:image/jpeg;base64,UEFHRTE="
PAGE_TWO = "data:image/jpeg;base64,UEFHRTI="


def build_generator(provider, api_key="test-key", models=MODELS):
    return NoteGenerator(GenerationConfig(api_key=api_key, models=list(models)), provider)


class TestFallbackOrder:

    @pytest.mark.asyncio
    async def test_first_model_success_makes_exactly_one_call(self, make_provider, lecture_payload):
        provider = make_provider()
        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is True
        assert result.model == "gemini-2.0-flash"
        assert result.data == lecture_payload
        assert provider.models_called == ["gemini-2.0-flash"]

    @pytest.mark.asyncio
    async def test_failure_advances_to_next_model(self, make_provider):
        provider = make_provider({"gemini-2.0-flash": RuntimeError("404 model not found")})

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is True
        assert result.model == "gemini-1.5-flash"
        assert provider.models_called == ["gemini-2.0-flash", "gemini-1.5-flash"]

    @pytest.mark.asyncio
    async def test_malformed_output_advances_to_next_model(self, make_provider):
        provider = make_provider({
            "gemini-2.0-flash": "Here are your notes: title Recursion",
            "gemini-1.5-flash": RuntimeError("quota exceeded"),
        })

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is True
        assert result.model == "gemini-1.5-pro"
        assert provider.models_called == MODELS

    @pytest.mark.asyncio
    async def test_fenced_json_is_accepted(self, make_provider, lecture_json, lecture_payload):
        provider = make_provider(default="```json\n" + lecture_json + "\n```")

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is True
        assert result.data == lecture_payload

    @pytest.mark.asyncio
    async def test_custom_model_order_is_respected(self, make_provider):
        provider = make_provider({"gemini-1.5-pro": RuntimeError("unavailable")})
        generator = build_generator(provider, models=["gemini-1.5-pro", "gemini-2.0-flash"])

        result = await generator.generate([PAGE_ONE])

        assert result.model == "gemini-2.0-flash"
        assert provider.models_called == ["gemini-1.5-pro", "gemini-2.0-flash"]


class TestExhaustion:

    @pytest.mark.asyncio
    async def test_all_models_fail_reports_last_error(self, make_provider):
        provider = make_provider({
            "gemini-2.0-flash": RuntimeError("first failure"),
            "gemini-1.5-flash": RuntimeError("second failure"),
            "gemini-1.5-pro": RuntimeError("third failure"),
        })

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is False
        assert result.error_code == "generation_failed"
        assert "All models failed" in result.error
        assert "Last error: third failure" in result.error
        assert "Diag: gemini-pro is reachable" in result.error
        assert provider.models_called == MODELS + ["gemini-pro"]

    @pytest.mark.asyncio
    async def test_diagnostic_call_is_text_only(self, make_provider):
        provider = make_provider(default=RuntimeError("down"))

        await build_generator(provider).generate([PAGE_ONE])

        model, prompt, images = provider.calls[-1]
        assert model == "gemini-pro"
        assert prompt == DIAGNOSTIC_PROMPT
        assert images == []

    @pytest.mark.asyncio
    async def test_diagnostic_failure_is_included(self, make_provider):
        provider = make_provider(default=RuntimeError("service unavailable"))

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.error_code == "generation_failed"
        assert "Last error: service unavailable. Diag: service unavailable" in result.error

    @pytest.mark.asyncio
    async def test_invalid_key_detected_by_diagnostic(self, make_provider):
        provider = make_provider(default=RuntimeError("400 API key not valid. Please pass a valid API key."))

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is False
        assert result.error_code == "invalid_credentials"
        assert result.error == NoteGenerator.INVALID_KEY_MESSAGE

    @pytest.mark.asyncio
    async def test_all_malformed_reports_parse_error(self, make_provider):
        provider = make_provider({model: "not json" for model in MODELS})

        result = await build_generator(provider).generate([PAGE_ONE])

        assert result.success is False
        assert "not valid JSON" in result.error


class TestCredentials:

    @pytest.mark.asyncio
    async def test_missing_key_makes_no_calls(self, make_provider):
        provider = make_provider()

        result = await build_generator(provider, api_key="").generate([PAGE_ONE])

        assert result.success is False
        assert result.error_code == "configuration_error"
        assert "GEMINI_API_KEY" in result.error
        assert provider.calls == []

    @pytest.mark.asyncio
    async def test_placeholder_key_counts_as_missing(self, make_provider):
        provider = make_provider()

        result = await build_generator(provider, api_key=PLACEHOLDER_API_KEY).generate([PAGE_ONE])

        assert result.error_code == "configuration_error"
        assert provider.calls == []


class TestUnexpectedErrors:

    @pytest.mark.asyncio
    async def test_bad_page_is_reported_not_raised(self, make_provider):
        provider = make_provider()

        result = await build_generator(provider).generate([None])

        assert result.success is False
        assert result.error_code == "server_error"
        assert result.error.startswith("Server Error:")
        assert provider.calls == []


class TestImageInput:

    @pytest.mark.asyncio
    async def test_single_string_is_one_page(self, make_provider):
        provider = make_provider()

        await build_generator(provider).generate(PAGE_ONE)

        _, prompt, images = provider.calls[0]
        assert prompt == LECTURE_PROMPT
        assert images == ["UEFHRTE="]

    @pytest.mark.asyncio
    async def test_pages_are_sent_in_order_without_prefix(self, make_provider):
        provider = make_provider()

        await build_generator(provider).generate([PAGE_ONE, PAGE_TWO, "UEFHRTM="])

        assert provider.calls[0][2] == ["UEFHRTE=", "UEFHRTI=", "UEFHRTM="]


class TestGenerationConfig:

    def test_from_settings(self, test_settings):
        config = GenerationConfig.from_settings(test_settings)

        assert config.api_key == "test-key-not-real"
        assert config.models == MODELS
        assert config.diagnostic_model == "gemini-pro"
        assert config.has_credentials is True

    def test_placeholder_key_in_settings_is_not_a_credential(self, test_settings):
        placeholder = test_settings.model_copy(update={"gemini_api_key": PLACEHOLDER_API_KEY})

        assert placeholder.has_gemini_credentials is False
        assert GenerationConfig.from_settings(placeholder).has_credentials is False
