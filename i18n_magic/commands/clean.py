"""Remove keys from every locale document that the source no longer references."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional, Tuple

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results, raise_for_failures
from i18n_magic.reconciler import KeyIndex, load_key_index, split_unused_keys

logger = logging.getLogger(__name__)


@dataclass
class NamespaceCleanResult:
    locale: str
    namespace: str
    removed: int
    remaining: int


@dataclass
class CleanReport:
    results: List[NamespaceCleanResult] = field(default_factory=list)

    @property
    def removed(self) -> int:
        return sum(result.removed for result in self.results)

    @property
    def total(self) -> int:
        return sum(result.removed + result.remaining for result in self.results)


async def remove_unused_keys(config: I18nConfig, index: Optional[KeyIndex] = None) -> CleanReport:
    """
    Drop unused keys from every (namespace, locale) document.

    Only documents that actually lose keys are rewritten.

    Args:
        config: The I18nConfig of the run.
        index: A pre-built key index, to avoid scanning twice.

    Returns:
        Per-document removed/remaining counts.
    """
    if index is None:
        index = await load_key_index(config)

    async def clean_document(pair: Tuple[str, str]) -> NamespaceCleanResult:
        namespace, locale = pair
        existing = await config.store.load(locale, namespace)
        kept, removed = split_unused_keys(existing, index.used_keys(namespace))
        if removed:
            await config.store.write(locale, namespace, kept)
            logger.info("Removed %d unused keys from %s:%s (%d keys remaining)",
                        len(removed), locale, namespace, len(kept))
            logger.debug("Removed from %s:%s: %s", locale, namespace, ', '.join(removed))
        else:
            logger.info("No unused keys found in %s:%s", locale, namespace)
        return NamespaceCleanResult(locale=locale, namespace=namespace, removed=len(removed), remaining=len(kept))

    pairs = [(namespace, locale) for namespace in config.namespaces for locale in config.locales]
    results = await gather_results(pairs, clean_document, desc="Cleaning", show_progress=config.show_progress)
    report = CleanReport(results=raise_for_failures(results))

    if report.removed > 0:
        logger.info("Removed %d unused keys (out of %d total keys)", report.removed, report.total)
    else:
        logger.info("No unused keys found in the project (%d total keys)", report.total)
    return report
