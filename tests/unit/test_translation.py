import json
import unittest
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from openai import OpenAIError

from i18n_magic.errors import TranslationError
from i18n_magic.translation import (
    GEMINI_BASE_URL,
    OpenAITranslator,
    TranslationRequest,
    build_system_prompt,
    chunk_mapping,
    create_openai_translator,
    translate_mapping,
)
from tests.conftest import fake_translator


def test_chunk_mapping_keeps_order_and_sizes():
    mapping = {f"key{i}": f"value {i}" for i in range(250)}

    chunks = list(chunk_mapping(mapping, 100))

    assert [len(chunk) for chunk in chunks] == [100, 100, 50]
    assert list(chunks[0])[0] == "key0"
    assert list(chunks[2])[-1] == "key249"


def test_chunk_mapping_rejects_non_positive_size():
    with pytest.raises(ValueError):
        list(chunk_mapping({"a": "A"}, 0))


class TestTranslateMapping:

    @pytest.mark.asyncio
    async def test_large_mapping_is_sent_in_three_requests(self):
        translator = fake_translator()
        mapping = {f"key{i}": f"value {i}" for i in range(250)}

        result = await translate_mapping("en", "de", mapping, translator, delay=0)

        assert translator.await_count == 3
        assert set(result) == set(mapping)
        assert result["key42"] == "[German] value 42"

    @pytest.mark.asyncio
    async def test_requests_use_display_names_and_context(self):
        translator = fake_translator()

        await translate_mapping("en", "pt-BR", {"hello": "Hello"}, translator, context="A banking app", delay=0)

        request = translator.await_args.args[0]
        assert isinstance(request, TranslationRequest)
        assert request.input_language == "English"
        assert request.output_language == "pt-BR"
        assert request.context == "A banking app"
        assert request.data == {"hello": "Hello"}

    @pytest.mark.asyncio
    async def test_unknown_locale_passes_through_as_name(self):
        translator = fake_translator()

        result = await translate_mapping("en", "xx-Custom", {"a": "A"}, translator, delay=0)

        assert result == {"a": "[xx-Custom] A"}

    @pytest.mark.asyncio
    async def test_custom_language_names(self):
        translator = fake_translator()

        await translate_mapping("en", "kl", {"a": "A"}, translator, delay=0,
                                language_codes={"en": "English", "kl": "Klingon"})

        assert translator.await_args.args[0].output_language == "Klingon"

    @pytest.mark.asyncio
    async def test_empty_mapping_makes_no_request(self):
        translator = fake_translator()

        assert await translate_mapping("en", "de", {}, translator) == {}
        translator.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_dropped_key_fails_the_whole_call(self):
        translator = AsyncMock(return_value={"a": "A-de"})

        with pytest.raises(TranslationError) as exc_info:
            await translate_mapping("en", "de", {"a": "A", "b": "B"}, translator, delay=0)

        assert exc_info.value.locale == "de"
        assert "b" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_extra_keys_are_ignored(self):
        translator = AsyncMock(return_value={"a": "A-de", "surprise": "?"})

        result = await translate_mapping("en", "de", {"a": "A"}, translator, delay=0)

        assert result == {"a": "A-de"}

    @pytest.mark.asyncio
    async def test_non_string_values_are_rejected(self):
        translator = AsyncMock(return_value={"a": 42})

        with pytest.raises(TranslationError):
            await translate_mapping("en", "de", {"a": "A"}, translator, delay=0)

    @pytest.mark.asyncio
    async def test_service_exception_is_wrapped_with_locale(self):
        cause = RuntimeError("connection reset")
        translator = AsyncMock(side_effect=cause)

        with pytest.raises(TranslationError) as exc_info:
            await translate_mapping("en", "fr", {"a": "A"}, translator, delay=0)

        assert exc_info.value.locale == "fr"
        assert exc_info.value.cause is cause

    @pytest.mark.asyncio
    async def test_second_chunk_failure_returns_nothing_partial(self):
        translator = AsyncMock(side_effect=[{"k0": "x"}, RuntimeError("boom")])

        with pytest.raises(TranslationError):
            await translate_mapping("en", "de", {"k0": "a", "k1": "b"}, translator, chunk_size=1, delay=0)

        assert translator.await_count == 2

    @pytest.mark.asyncio
    async def test_waits_between_chunks(self):
        translator = fake_translator()

        with patch("i18n_magic.translation.asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
            await translate_mapping("en", "de", {"a": "A", "b": "B", "c": "C"}, translator, chunk_size=1, delay=0.5)

        assert mock_sleep.await_count == 2
        mock_sleep.assert_awaited_with(0.5)


def test_system_prompt_mentions_context_only_when_given():
    assert "additional context" not in build_system_prompt(None)
    assert '"Recipe app"' in build_system_prompt("Recipe app")


def _completion(content):
    response = MagicMock()
    response.choices = [MagicMock()]
    response.choices[0].message.content = content
    return response


class TestOpenAITranslator(unittest.IsolatedAsyncioTestCase):

    def setUp(self):
        token_patcher = patch("i18n_magic.translation.count_tokens", return_value=10)
        token_patcher.start()
        self.addCleanup(token_patcher.stop)
        self.client = MagicMock()
        self.client.chat.completions.create = AsyncMock()
        self.translator = OpenAITranslator(self.client, "gpt-4o-mini", max_requests_per_minute=1000)
        self.request = TranslationRequest("English", "German", {"hello": "Hello"}, context="Shop")

    async def test_returns_parsed_json(self):
        self.client.chat.completions.create.return_value = _completion('{"hello": "Hallo"}')

        result = await self.translator(self.request)

        self.assertEqual(result, {"hello": "Hallo"})
        kwargs = self.client.chat.completions.create.call_args.kwargs
        self.assertEqual(kwargs["model"], "gpt-4o-mini")
        self.assertEqual(kwargs["response_format"], {"type": "json_object"})
        payload = json.loads(kwargs["messages"][1]["content"])
        self.assertEqual(payload["outputLanguage"], "German")
        self.assertEqual(payload["data"], {"hello": "Hello"})
        self.assertIn("Shop", kwargs["messages"][0]["content"])

    async def test_invalid_json_raises(self):
        self.client.chat.completions.create.return_value = _completion("not json at all")

        with self.assertRaises(TranslationError):
            await self.translator(self.request)

    async def test_api_error_raises(self):
        self.client.chat.completions.create.side_effect = OpenAIError("quota exceeded")

        with self.assertRaises(TranslationError) as ctx:
            await self.translator(self.request)

        self.assertIsInstance(ctx.exception.cause, OpenAIError)

    async def test_warns_about_oversized_requests(self):
        self.client.chat.completions.create.return_value = _completion('{"hello": "Hallo"}')
        translator = OpenAITranslator(self.client, "gpt-4o-mini", max_model_tokens=1)

        with self.assertLogs("i18n_magic.translation", level="WARNING") as logs:
            await translator(self.request)

        self.assertTrue(any("tokens" in line for line in logs.output))


class TestCreateOpenAITranslator(unittest.TestCase):

    @patch("i18n_magic.translation.AsyncOpenAI")
    def test_gemini_models_use_gemini_endpoint(self, mock_client_cls):
        create_openai_translator("key", "gemini-2.0-flash")
        mock_client_cls.assert_called_once_with(api_key="key", base_url=GEMINI_BASE_URL)

    @patch("i18n_magic.translation.AsyncOpenAI")
    def test_openai_models_use_default_endpoint(self, mock_client_cls):
        translator = create_openai_translator("key", "gpt-4o-mini", max_concurrent_api_calls=3)
        mock_client_cls.assert_called_once_with(api_key="key")
        self.assertEqual(translator.model, "gpt-4o-mini")
