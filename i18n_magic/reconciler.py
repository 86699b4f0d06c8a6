"""Diff the keys referenced in source against the persisted locale documents."""
import logging
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.key_extractor import extract_keys
from i18n_magic.keys import NAMESPACE_SEPARATOR, get_pure_key
from i18n_magic.models import KeyAssociation, MissingKey

logger = logging.getLogger(__name__)


@dataclass
class KeyIndex:
    """
    Namespace-local keys referenced in source.

    ``keys_by_namespace`` keeps discovery order. ``key_to_namespaces`` lists
    every namespace referencing a key, since shared files legitimately put
    the same key into several namespaces.
    """
    keys_by_namespace: Dict[str, List[str]] = field(default_factory=dict)
    key_to_namespaces: Dict[str, List[str]] = field(default_factory=dict)

    def add(self, key: str, namespace: str) -> None:
        namespaces = self.key_to_namespaces.setdefault(key, [])
        if namespace in namespaces:
            return
        namespaces.append(namespace)
        self.keys_by_namespace.setdefault(namespace, []).append(key)

    def used_keys(self, namespace: str) -> set:
        return set(self.keys_by_namespace.get(namespace, []))


def build_key_index(associations: Iterable[KeyAssociation], namespaces: Sequence[str] = ()) -> KeyIndex:
    """
    Resolve every call site to the namespaces it belongs to.

    A key prefixed with a configured namespace ("dashboard:title") belongs to
    that namespace wherever the file is. Any other key is resolved against
    the file's namespaces, which act as its default namespaces: a bare key
    belongs to all of them.
    """
    index = KeyIndex()
    for association in associations:
        prefix, separator, _ = association.key.partition(NAMESPACE_SEPARATOR)
        if separator and prefix in namespaces:
            index.add(get_pure_key(association.key, prefix, True), prefix)
            continue

        resolved = False
        for namespace in association.namespaces:
            pure_key = get_pure_key(association.key, namespace, True)
            if pure_key is None:
                continue
            index.add(pure_key, namespace)
            resolved = True
        if not resolved:
            logger.debug('Key "%s" in %s belongs to none of the file\'s namespaces (%s); skipped',
                         association.key, association.file, ", ".join(association.namespaces))
    return index


async def load_key_index(config: I18nConfig) -> KeyIndex:
    associations = await extract_keys(
        config.glob_patterns,
        config.default_namespace,
        root_dir=config.root_dir,
        functions=config.functions
    )
    return build_key_index(associations, config.namespaces)


async def load_documents(config: I18nConfig, locale: str, namespaces: Sequence[str]) -> Dict[str, Dict[str, str]]:
    """Load one locale's documents for several namespaces concurrently."""
    results = await gather_results(namespaces, lambda namespace: config.store.load(locale, namespace))
    return dict(zip(namespaces, raise_for_failures(results)))


def find_missing_keys(
        index: KeyIndex,
        namespaces: Sequence[str],
        documents: Dict[str, Dict[str, str]]
) -> List[MissingKey]:
    """
    Keys referenced in a namespace but absent from its default-locale document.

    A key is reported once. The first namespace (in configured order) that
    lacks it becomes the primary one; ``namespaces`` only lists the
    referencing namespaces that lack it too, so a value already present in
    a sibling namespace is not asked for again.
    """
    missing: Dict[str, MissingKey] = {}
    for namespace in namespaces:
        document = documents.get(namespace, {})
        for key in index.keys_by_namespace.get(namespace, []):
            if key in document or key in missing:
                continue
            missing[key] = MissingKey(
                key=key,
                primary_namespace=namespace,
                namespaces=[
                    ns for ns in index.key_to_namespaces.get(key, [namespace])
                    if key not in documents.get(ns, {})
                ]
            )
    return list(missing.values())


async def get_missing_keys(config: I18nConfig, index: Optional[KeyIndex] = None) -> List[MissingKey]:
    """
    Scan the sources and report keys missing from the default locale.

    Args:
        config: The I18nConfig of the run.
        index: A pre-built key index, to avoid scanning twice.

    Returns:
        The missing keys, in a stable order for a given tree.
    """
    if index is None:
        index = await load_key_index(config)
    documents = await load_documents(config, config.default_locale, config.namespaces)
    missing = find_missing_keys(index, config.namespaces, documents)
    logger.debug("%d key(s) missing from '%s'", len(missing), config.default_locale)
    return missing


def split_unused_keys(existing: Dict[str, str], used_keys: set) -> Tuple[Dict[str, str], List[str]]:
    """
    Separate a document into the entries still referenced and the unused keys.

    Returns:
        (kept entries in their original order, removed keys)
    """
    kept: Dict[str, str] = {}
    removed: List[str] = []
    for key, value in existing.items():
        if key in used_keys:
            kept[key] = value
        else:
            removed.append(key)
    return kept, removed


def get_unused_keys(index: KeyIndex, namespace: str, existing: Dict[str, str]) -> List[str]:
    """Keys present in a document that nothing in source references for ``namespace``."""
    return split_unused_keys(existing, index.used_keys(namespace))[1]


def find_existing_translations(
        documents: Dict[str, Dict[str, str]],
        keys: Iterable[str],
        preferred_namespaces: Optional[Dict[str, Sequence[str]]] = None
) -> Dict[str, str]:
    """
    Look up values a locale already has for ``keys`` in any namespace.

    ``preferred_namespaces`` maps a key to the namespaces to search first;
    every other loaded namespace is searched after them. Empty values do
    not count.
    """
    preferred_namespaces = preferred_namespaces or {}
    found: Dict[str, str] = {}
    for key in keys:
        search_order = list(dict.fromkeys([*preferred_namespaces.get(key, ()), *documents]))
        for namespace in search_order:
            value = documents.get(namespace, {}).get(key)
            if value:
                found[key] = value
                break
    return found
