"""Build a smaller namespace holding only the keys a subset of the sources uses."""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from i18n_magic.app_config import I18nConfig
from i18n_magic.concurrency import gather_results
from i18n_magic.errors import ConfigurationError
from i18n_magic.key_extractor import extract_keys
from i18n_magic.keys import get_pure_key
from i18n_magic.models import GlobPatternRule

logger = logging.getLogger(__name__)


@dataclass
class PruneOptions:
    source_namespace: str
    new_namespace: str
    glob_patterns: List[str]
    include_patterns: List[str] = field(default_factory=list)
    exclude_patterns: List[str] = field(default_factory=list)


@dataclass
class PruneResult:
    locale: str
    key_count: int
    success: bool
    error: Optional[str] = None


@dataclass
class PruneResponse:
    success: bool
    message: str
    keys_count: int
    results: List[PruneResult] = field(default_factory=list)


async def create_pruned_namespace(config: I18nConfig, options: PruneOptions) -> PruneResponse:
    """
    Copy the source-namespace keys referenced by the given files into a new namespace.

    A locale that fails is reported in the response instead of aborting the
    other locales.

    Raises:
        ConfigurationError: if the source namespace is unknown or the new
            namespace already exists.
    """
    source_namespace = options.source_namespace
    new_namespace = options.new_namespace
    config.require_namespace(source_namespace)
    if new_namespace in config.namespaces:
        raise ConfigurationError(f"Namespace '{new_namespace}' already exists")

    logger.info("Creating pruned namespace '%s' from '%s'", new_namespace, source_namespace)
    logger.info("Using glob patterns: %s", ", ".join(options.glob_patterns))

    rules = [GlobPatternRule(pattern) for pattern in [*options.glob_patterns, *options.include_patterns]]
    associations = await extract_keys(
        rules,
        config.default_namespace,
        root_dir=config.root_dir,
        functions=config.functions,
        exclude_patterns=options.exclude_patterns
    )

    is_default = source_namespace == config.default_namespace
    relevant_keys = list(dict.fromkeys(
        pure_key for pure_key in (
            get_pure_key(association.key, source_namespace, is_default) for association in associations
        )
        if pure_key is not None
    ))
    logger.info("Found %d keys from namespace '%s'", len(relevant_keys), source_namespace)

    if not relevant_keys:
        logger.info("No relevant keys found.")
        return PruneResponse(success=False, message="No relevant keys found", keys_count=0)

    async def prune_locale(locale: str) -> int:
        source = await config.store.load(locale, source_namespace)
        pruned = {key: source[key] for key in relevant_keys if source.get(key)}
        await config.store.write(locale, new_namespace, pruned)
        logger.info("Created pruned namespace '%s' for locale '%s' with %d keys", new_namespace, locale, len(pruned))
        return len(pruned)

    results = []
    for result in await gather_results(config.locales, prune_locale):
        if result.ok:
            results.append(PruneResult(locale=result.item, key_count=result.value, success=True))
        else:
            logger.error("Error creating pruned namespace for locale '%s': %s", result.item, result.error)
            results.append(PruneResult(locale=result.item, key_count=0, success=False, error=str(result.error)))

    return PruneResponse(
        success=True,
        message=f"Created pruned namespace '{new_namespace}' with {len(relevant_keys)} keys",
        keys_count=len(relevant_keys),
        results=results
    )
