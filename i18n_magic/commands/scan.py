"""Find keys used in source but missing from the default locale, ask for them and translate them."""
import logging
from typing import Awaitable, Callable, Dict, List, Optional

from i18n_magic.app_config import I18nConfig
from i18n_magic.commands.clean import remove_unused_keys
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.models import MissingKey
from i18n_magic.reconciler import (
    KeyIndex,
    find_existing_translations,
    get_missing_keys,
    load_documents,
    load_key_index,
)
from i18n_magic.translation import Translator, translate_mapping

logger = logging.getLogger(__name__)

Prompt = Callable[[MissingKey], Awaitable[str]]


async def _collect_default_values(
        config: I18nConfig,
        missing_keys: List[MissingKey],
        index: KeyIndex,
        prompt: Prompt
) -> Dict[str, str]:
    documents = await load_documents(config, config.default_locale, config.namespaces)
    reused = find_existing_translations(
        documents,
        [missing.key for missing in missing_keys],
        index.key_to_namespaces
    )
    if reused:
        logger.info("Reusing %d existing %s value(s) from other namespaces", len(reused), config.default_locale)

    values: Dict[str, str] = {}
    for missing in missing_keys:
        if missing.key in reused:
            values[missing.key] = reused[missing.key]
        else:
            values[missing.key] = await prompt(missing)
    return values


async def _translations_for_locale(
        config: I18nConfig,
        locale: str,
        source_values: Dict[str, str],
        index: KeyIndex,
        translator: Translator
) -> Dict[str, str]:
    documents = await load_documents(config, locale, config.namespaces)
    existing = find_existing_translations(documents, source_values, index.key_to_namespaces)
    to_translate = {key: value for key, value in source_values.items() if key not in existing}
    if existing:
        logger.info("Reusing %d existing translations for %s", len(existing), locale)
    if not to_translate:
        return existing

    logger.info("Translating %d new keys for %s", len(to_translate), locale)
    translated = await translate_mapping(
        config.default_locale,
        locale,
        to_translate,
        translator,
        context=config.context,
        chunk_size=config.translation_chunk_size,
        language_codes=config.language_codes
    )
    return {**existing, **translated}


async def translate_missing(
        config: I18nConfig,
        prompt: Prompt,
        index: Optional[KeyIndex] = None
) -> Dict[str, str]:
    """
    Fill keys that are used in source but have no default-locale value.

    Values already present under another namespace are reused; the rest are
    requested through ``prompt``. Unless translation during scan is
    disabled, the values are then translated into every other locale and
    written into each namespace that needs the key.

    Args:
        config: The I18nConfig of the run.
        prompt: Async callable returning the default-locale text for a key.
        index: A pre-built key index, to avoid scanning twice.

    Returns:
        The new default-locale values, key -> text.

    Raises:
        ConfigurationError: if translation is enabled but no translator is
            configured; raised before anything is prompted.
        TranslationError: if translating into a locale failed. Locales that
            succeeded are still written before the error is raised.
    """
    translator = None
    if not config.disable_translation_during_scan:
        translator = config.require_translator()

    if index is None:
        index = await load_key_index(config)

    if config.auto_clear:
        await remove_unused_keys(config, index)

    missing_keys = await get_missing_keys(config, index)
    if not missing_keys:
        logger.info("No new keys found.")
        return {}

    logger.info("Found %d new key(s); provide values in %s.", len(missing_keys), config.default_locale)
    source_values = await _collect_default_values(config, missing_keys, index, prompt)

    translations: Dict[str, Dict[str, str]] = {config.default_locale: source_values}
    failures = []
    if config.disable_translation_during_scan:
        logger.info("Translation during scan is disabled; run 'sync' to fill the other locales.")
    else:
        results = await gather_results(
            config.other_locales,
            lambda locale: _translations_for_locale(config, locale, source_values, index, translator),
            desc="Translating",
            show_progress=config.show_progress
        )
        for result in results:
            if result.ok:
                translations[result.item] = result.value
            else:
                logger.error("Translation failed for %s: %s", result.item, result.error)
                failures.append(result)

    namespaces_by_key = {missing.key: missing.namespaces for missing in missing_keys}
    pairs = [
        (locale, namespace)
        for locale in translations
        for namespace in config.namespaces
        if any(namespace in namespaces for namespaces in namespaces_by_key.values())
    ]

    async def write_pair(pair):
        locale, namespace = pair
        values = translations[locale]
        document = await config.store.load(locale, namespace)
        added = 0
        for key, namespaces in namespaces_by_key.items():
            if namespace in namespaces and key in values:
                document[key] = values[key]
                added += 1
        await config.store.write(locale, namespace, document)
        logger.info("Updated %s (%s): %d keys", locale, namespace, added)

    raise_for_failures(await gather_results(pairs, write_pair, desc="Saving", show_progress=config.show_progress))
    if failures:
        raise failures[0].error
    return source_values
