"""Batch machine translation of key/value mappings."""
import asyncio
import json
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Dict, Iterator, List, Optional

import jsonschema
import tiktoken
from aiolimiter import AsyncLimiter
from openai import AsyncOpenAI, OpenAIError
from openai.types.chat import (
    ChatCompletionSystemMessageParam,
    ChatCompletionUserMessageParam
)

from i18n_magic.errors import TranslationError
from i18n_magic.languages import language_code_to_name

logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100
DEFAULT_CHUNK_DELAY = 0.1

GEMINI_BASE_URL = "https://generativelanguage.googleapis.com/v1beta/openai/"

# The service must hand back an object of strings; anything else is unusable.
LOCALIZATION_SCHEMA = {
    "type": "object",
    "patternProperties": {
        "^.*$": {"type": "string"}
    },
    "additionalProperties": False
}


@dataclass(frozen=True)
class TranslationRequest:
    input_language: str
    output_language: str
    data: Dict[str, str]
    context: Optional[str] = None


Translator = Callable[[TranslationRequest], Awaitable[Dict[str, str]]]


def chunk_mapping(mapping: Dict[str, str], chunk_size: int = DEFAULT_CHUNK_SIZE) -> Iterator[Dict[str, str]]:
    """Split a mapping into dicts of at most ``chunk_size`` entries, keeping order."""
    if chunk_size < 1:
        raise ValueError("chunk_size must be at least 1")
    items = list(mapping.items())
    for start in range(0, len(items), chunk_size):
        yield dict(items[start:start + chunk_size])


def _check_chunk_result(chunk: Dict[str, str], result: object, output_locale: str) -> Dict[str, str]:
    try:
        jsonschema.validate(instance=result, schema=LOCALIZATION_SCHEMA)
    except jsonschema.ValidationError as schema_exc:
        raise TranslationError(
            f"Translation service returned an invalid mapping for locale '{output_locale}'",
            locale=output_locale,
            cause=schema_exc
        ) from schema_exc

    missing = [key for key in chunk if key not in result]
    if missing:
        raise TranslationError(
            f"Translation service dropped {len(missing)} key(s) for locale '{output_locale}': "
            f"{', '.join(missing[:5])}",
            locale=output_locale
        )
    extra = [key for key in result if key not in chunk]
    if extra:
        logger.warning("Ignoring %d unexpected key(s) returned for '%s': %s",
                       len(extra), output_locale, ', '.join(extra[:5]))
    return {key: result[key] for key in chunk}


async def translate_mapping(
        input_locale: str,
        output_locale: str,
        mapping: Dict[str, str],
        translator: Translator,
        context: Optional[str] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        delay: float = DEFAULT_CHUNK_DELAY,
        language_codes: Optional[Dict[str, str]] = None
) -> Dict[str, str]:
    """
    Translate every value of ``mapping`` from one locale to another.

    The mapping is sent in chunks, one after the other with a short pause in
    between. Keys come back unchanged. If any chunk fails the whole call
    fails; nothing partial is returned.

    Args:
        input_locale: Locale code of the values (e.g. "en").
        output_locale: Locale code to translate into.
        mapping: Key -> source text.
        translator: The batch translation service.
        context: Optional free-text hint about the application.
        chunk_size: Maximum keys per request.
        delay: Seconds to wait between requests.
        language_codes: Locale code -> display name overrides.

    Returns:
        Key -> translated text, covering every key of ``mapping``.

    Raises:
        TranslationError: if the service fails or returns unusable output.
    """
    if not mapping:
        return {}

    input_language = language_code_to_name(input_locale, language_codes)
    output_language = language_code_to_name(output_locale, language_codes)

    chunks = list(chunk_mapping(mapping, chunk_size))
    translated: Dict[str, str] = {}
    for index, chunk in enumerate(chunks):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)
        request = TranslationRequest(
            input_language=input_language,
            output_language=output_language,
            data=chunk,
            context=context
        )
        logger.debug("Translating chunk %d/%d (%d keys) %s -> %s",
                     index + 1, len(chunks), len(chunk), input_locale, output_locale)
        try:
            result = await translator(request)
        except TranslationError as translation_exc:
            if translation_exc.locale is None:
                translation_exc.locale = output_locale
            raise
        except Exception as exc:
            raise TranslationError(
                f"Failed to translate keys for locale '{output_locale}'",
                locale=output_locale,
                cause=exc
            ) from exc
        translated.update(_check_chunk_result(chunk, result, output_locale))

    return translated


def count_tokens(text: str, model_name: str) -> int:
    """Count tokens for ``model_name``, falling back to cl100k_base and then a whitespace split."""
    try:
        encoding = tiktoken.encoding_for_model(model_name)
    except Exception:
        try:
            encoding = tiktoken.get_encoding("cl100k_base")
        except Exception:
            return len(text.split())
    return len(encoding.encode(text))


def build_system_prompt(context: Optional[str]) -> str:
    context_text = ""
    if context:
        context_text = (
            "The user provided some additional context or guidelines about the application: "
            f"\"{context}\". "
        )
    return (
        "You are a bot that translates the values of a locales JSON. "
        f"{context_text}"
        "The user provides a JSON object with a field named \"inputLanguage\", the language the values "
        "are written in, a field named \"outputLanguage\", the language to translate the values to, and a "
        "field named \"data\" with the object to translate. The keys must never be changed, added or "
        "removed. Keep placeholders such as {{name}} or {count} exactly as they are. "
        "Output only a JSON object with the same keys as \"data\" and the translated values. "
        "Example input: {\"inputLanguage\": \"English\", \"outputLanguage\": \"German\", "
        "\"data\": {\"hello\": \"Hello\", \"world\": \"World\"}}. "
        "Example output: {\"hello\": \"Hallo\", \"world\": \"Welt\"}."
    )


class OpenAITranslator:
    """
    Translation service backed by an OpenAI-compatible chat completions API.

    One instance is shared by every locale task of a command, so the
    semaphore and rate limiter bound the total request load.
    """

    def __init__(
            self,
            client: AsyncOpenAI,
            model: str,
            max_concurrent_api_calls: int = 1,
            max_requests_per_minute: int = 60,
            max_model_tokens: int = 16000
    ):
        self.client = client
        self.model = model
        self.semaphore = asyncio.Semaphore(max_concurrent_api_calls)
        self.rate_limiter = AsyncLimiter(max_rate=max_requests_per_minute, time_period=60)
        self.max_model_tokens = max_model_tokens

    def _messages(self, request: TranslationRequest) -> List:
        payload = json.dumps({
            "inputLanguage": request.input_language,
            "outputLanguage": request.output_language,
            "data": request.data,
        }, ensure_ascii=False)
        return [
            ChatCompletionSystemMessageParam(role="system", content=build_system_prompt(request.context)),
            ChatCompletionUserMessageParam(role="user", content=payload),
        ]

    async def __call__(self, request: TranslationRequest) -> Dict[str, str]:
        messages = self._messages(request)
        prompt_tokens = sum(count_tokens(message["content"], self.model) for message in messages)
        if prompt_tokens > self.max_model_tokens:
            logger.warning(
                "Translation request to %s is %d tokens, above the configured limit of %d; "
                "consider a smaller translation_chunk_size.",
                request.output_language, prompt_tokens, self.max_model_tokens
            )

        async with self.semaphore, self.rate_limiter:
            try:
                response = await self.client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    response_format={"type": "json_object"},
                    temperature=0.3,
                    timeout=120.0,
                )
            except OpenAIError as api_exc:
                logger.error("API error occurred: %s - %s", api_exc.__class__.__name__, api_exc)
                raise TranslationError(
                    f"Translation request to {request.output_language} failed", cause=api_exc
                ) from api_exc

        response_text = (response.choices[0].message.content or "").strip()
        try:
            return json.loads(response_text)
        except json.JSONDecodeError as json_exc:
            logger.debug("Invalid AI response (JSON Decode Error):\n---\n%s\n---", response_text)
            raise TranslationError(
                f"Translation service did not return valid JSON for {request.output_language}",
                cause=json_exc
            ) from json_exc


def create_openai_translator(
        api_key: str,
        model: str,
        max_concurrent_api_calls: int = 1,
        max_requests_per_minute: int = 60,
        max_model_tokens: int = 16000
) -> OpenAITranslator:
    """Build the translator, pointing Gemini models at Google's OpenAI-compatible endpoint."""
    if "gemini" in model:
        client = AsyncOpenAI(api_key=api_key, base_url=GEMINI_BASE_URL)
    else:
        client = AsyncOpenAI(api_key=api_key)
    return OpenAITranslator(
        client,
        model,
        max_concurrent_api_calls=max_concurrent_api_calls,
        max_requests_per_minute=max_requests_per_minute,
        max_model_tokens=max_model_tokens
    )
