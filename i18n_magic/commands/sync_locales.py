"""Fill every non-default locale with the keys the default locale already has."""
import logging
from typing import Dict, List, Tuple

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.errors import ConfigurationError, DocumentParseError, TranslationError
from i18n_magic.reconciler import find_existing_translations, load_documents
from i18n_magic.translation import translate_mapping

logger = logging.getLogger(__name__)


async def ensure_locale_files(config: I18nConfig) -> List[Tuple[str, str]]:
    """Create an empty document for every (locale, namespace) pair that has none yet."""
    pairs = [(locale, namespace) for locale in config.locales for namespace in config.namespaces]

    async def ensure(pair: Tuple[str, str]) -> bool:
        locale, namespace = pair
        if await config.store.exists(locale, namespace):
            return False
        logger.info("Creating missing namespace file: %s", config.store.describe(locale, namespace))
        await config.store.write(locale, namespace, {})
        return True

    results = raise_for_failures(await gather_results(pairs, ensure))
    return [pair for pair, created in zip(pairs, results) if created]


def collect_missing(
        namespaces: List[str],
        default_documents: Dict[str, Dict[str, str]],
        locale_documents: Dict[str, Dict[str, str]]
) -> Dict[str, Tuple[str, List[str]]]:
    """
    Keys the default locale has but the target locale lacks (or left empty).

    Returns:
        key -> (default-locale value, namespaces lacking the key)
    """
    missing: Dict[str, Tuple[str, List[str]]] = {}
    for namespace in namespaces:
        locale_keys = locale_documents.get(namespace, {})
        for key, value in default_documents.get(namespace, {}).items():
            if locale_keys.get(key):
                continue
            if key in missing:
                missing[key][1].append(namespace)
            else:
                missing[key] = (value, [namespace])
    return missing


async def sync_locale(config: I18nConfig, locale: str) -> int:
    """
    Bring one locale up to date with the default locale.

    Returns:
        The number of distinct keys added.
    """
    default_documents = await load_documents(config, config.default_locale, config.namespaces)
    locale_documents = await load_documents(config, locale, config.namespaces)

    missing = collect_missing(config.namespaces, default_documents, locale_documents)
    if not missing:
        logger.info("No missing keys found for %s", locale)
        return 0
    logger.info("Found %d unique missing keys in %s", len(missing), locale)

    # A sibling namespace may already hold this locale's translation of the key.
    existing = find_existing_translations(locale_documents, missing)
    if existing:
        logger.info("Reusing %d existing translations for %s", len(existing), locale)

    to_translate = {key: value for key, (value, _) in missing.items() if key not in existing}
    translated: Dict[str, str] = {}
    if to_translate:
        logger.info("Translating %d new keys for %s", len(to_translate), locale)
        translated = await translate_mapping(
            config.default_locale,
            locale,
            to_translate,
            config.require_translator(),
            context=config.context,
            chunk_size=config.translation_chunk_size,
            language_codes=config.language_codes
        )
    all_translations = {**existing, **translated}

    async def write_namespace(namespace: str) -> int:
        keys = [key for key, (_, namespaces) in missing.items() if namespace in namespaces]
        if not keys:
            return 0
        updated = dict(locale_documents[namespace])
        for key in keys:
            updated[key] = all_translations.get(key, "")
        try:
            await config.store.write(locale, namespace, updated)
        except Exception as exc:
            raise TranslationError(
                f"Failed to save translations for locale '{locale}' (namespace: {namespace})",
                locale=locale,
                namespace=namespace,
                cause=exc
            ) from exc
        logger.info("Updated %s (%s): %d keys", locale, namespace, len(keys))
        return len(keys)

    raise_for_failures(await gather_results(config.namespaces, write_namespace))
    return len(missing)


async def sync_locales(config: I18nConfig) -> Dict[str, int]:
    """
    Translate every key of the default locale that another locale lacks.

    Locales are processed concurrently; a failing locale does not stop the
    others, but the first failure is raised once all of them are done.

    Returns:
        locale -> number of keys added.

    Raises:
        TranslationError: carrying the failing locale (and namespace, for
            write failures).
        DocumentParseError: if a locale document is not valid JSON.
    """
    logger.info("Syncing translations for locales: %s", ", ".join(config.locales))
    logger.info("Namespaces: %s", ", ".join(config.namespaces))
    logger.info("Default locale: %s", config.default_locale)

    await ensure_locale_files(config)

    results = await gather_results(
        config.other_locales,
        lambda locale: sync_locale(config, locale),
        desc="Syncing locales",
        show_progress=config.show_progress
    )

    failures = [result for result in results if not result.ok]
    for failure in failures:
        logger.error("Sync failed for %s: %s", failure.item, failure.error)
    if failures:
        error = failures[0].error
        if isinstance(error, (TranslationError, DocumentParseError, ConfigurationError)):
            raise error
        raise TranslationError(
            f"An unexpected error occurred while syncing locale '{failures[0].item}'",
            locale=failures[0].item,
            cause=error
        ) from error

    return {result.item: result.value for result in results}
