"""Add a single key with its default-locale value to the namespaces that use it."""
import logging
from dataclasses import dataclass
from typing import List, Optional, Tuple

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.errors import ConfigurationError
from i18n_magic.keys import NAMESPACE_SEPARATOR, get_pure_key
from i18n_magic.reconciler import KeyIndex, load_key_index

logger = logging.getLogger(__name__)


@dataclass
class AddedKey:
    key: str
    value: str
    namespaces: List[str]
    locale: str


def resolve_target_namespaces(config: I18nConfig, key: str, index: KeyIndex) -> Tuple[str, List[str]]:
    """
    Decide where a new key goes.

    Namespaces whose sources reference the key win; otherwise the namespace
    named by the key's prefix, otherwise the default namespace.
    """
    referenced = []
    pure_key = None
    for namespace in config.namespaces:
        candidate = get_pure_key(key, namespace, True)
        if candidate is not None and namespace in index.key_to_namespaces.get(candidate, []):
            referenced.append(namespace)
            pure_key = candidate
    if referenced:
        return pure_key, referenced

    prefix, separator, rest = key.partition(NAMESPACE_SEPARATOR)
    if not separator:
        return key, [config.default_namespace]
    if prefix in config.namespaces:
        return rest, [prefix]
    raise ConfigurationError(f"Namespace '{prefix}' of key '{key}' not found in configuration")


async def add_translation_key(
        config: I18nConfig,
        key: str,
        value: str,
        index: Optional[KeyIndex] = None
) -> AddedKey:
    """
    Write ``key`` with ``value`` into the default locale.

    Other locales are left to ``sync``.
    """
    if not key.strip():
        raise ConfigurationError("The translation key must not be empty.")
    if index is None:
        index = await load_key_index(config)

    pure_key, namespaces = resolve_target_namespaces(config, key, index)
    locale = config.default_locale

    async def write_namespace(namespace: str) -> None:
        document = await config.store.load(locale, namespace)
        if pure_key in document:
            logger.warning('Overwriting existing value of "%s" in %s:%s', pure_key, locale, namespace)
        document[pure_key] = value
        await config.store.write(locale, namespace, document)
        logger.info('Added "%s" to %s:%s', pure_key, locale, namespace)

    raise_for_failures(await gather_results(namespaces, write_namespace))
    return AddedKey(key=pure_key, value=value, namespaces=namespaces, locale=locale)
