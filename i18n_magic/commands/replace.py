"""Replace the value of an existing key and re-translate it into every locale."""
import logging
from typing import Awaitable, Callable, Dict, List, Optional, Tuple

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.errors import ConfigurationError
from i18n_magic.keys import NAMESPACE_SEPARATOR
from i18n_magic.reconciler import load_documents
from i18n_magic.translation import translate_mapping

logger = logging.getLogger(__name__)

Ask = Callable[[str], Awaitable[str]]

MAX_PROMPT_ATTEMPTS = 5


def locate_key(
        config: I18nConfig,
        key: str,
        documents: Dict[str, Dict[str, str]]
) -> Tuple[str, List[str]]:
    """
    Find where a key lives in the default locale.

    A "namespace:key" form pins the namespace; a bare key is looked up in
    every namespace that defines it.

    Returns:
        (namespace-local key, namespaces defining it); the list is empty if
        the key does not exist.
    """
    prefix, separator, rest = key.partition(NAMESPACE_SEPARATOR)
    if separator and prefix in config.namespaces:
        return rest, [prefix] if rest in documents.get(prefix, {}) else []
    return key, [namespace for namespace in config.namespaces if key in documents.get(namespace, {})]


async def replace_translation(config: I18nConfig, ask: Ask, key: Optional[str] = None) -> Dict[str, str]:
    """
    Ask for a key and its new default-locale value, then translate it everywhere.

    The key is asked for again until it exists, at most MAX_PROMPT_ATTEMPTS
    times.

    Args:
        config: The I18nConfig of the run.
        ask: Async callable that shows a message and returns the user's answer.
        key: Key to replace; asked for when not given.

    Returns:
        locale -> new value.

    Raises:
        ConfigurationError: if no existing key was given.
    """
    documents = await load_documents(config, config.default_locale, config.namespaces)

    pure_key, namespaces = (key, []) if key is None else locate_key(config, key, documents)
    attempts = 0
    while not namespaces:
        if key is not None:
            logger.warning('The key "%s" does not exist.', key)
        attempts += 1
        if attempts > MAX_PROMPT_ATTEMPTS:
            raise ConfigurationError(f"No existing key given after {MAX_PROMPT_ATTEMPTS} attempts.")
        key = (await ask("Enter the key to replace the translation for: ")).strip()
        pure_key, namespaces = locate_key(config, key, documents)

    current = documents[namespaces[0]][pure_key]
    logger.info('The current translation in %s for "%s" is "%s".', config.default_locale, pure_key, current)
    new_value = await ask("Enter the new translation: ")

    async def value_for_locale(locale: str) -> str:
        if locale == config.default_locale:
            return new_value
        translation = await translate_mapping(
            config.default_locale,
            locale,
            {pure_key: new_value},
            config.require_translator(),
            context=config.context,
            language_codes=config.language_codes
        )
        return translation[pure_key]

    values = dict(zip(
        config.locales,
        raise_for_failures(await gather_results(config.locales, value_for_locale, desc="Translating",
                                                show_progress=config.show_progress))
    ))

    async def write_pair(pair: Tuple[str, str]) -> None:
        locale, namespace = pair
        document = await config.store.load(locale, namespace)
        document[pure_key] = values[locale]
        await config.store.write(locale, namespace, document)
        logger.info('The new translation for "%s" in %s (%s) is "%s".', pure_key, locale, namespace, values[locale])

    pairs = [(locale, namespace) for locale in config.locales for namespace in namespaces]
    raise_for_failures(await gather_results(pairs, write_pair))
    return values
