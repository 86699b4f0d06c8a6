"""Walk the source tree and collect every translation key with its namespaces."""
import asyncio
import logging
import os
from typing import Iterable, List, Optional, Sequence

from wcmatch import glob as wcglob

from i18n_magic.keys import (
    DEFAULT_FUNCTIONS,
    GLOB_FLAGS,
    get_namespaces_for_file,
    parse_keys_from_text,
    strip_dot_slash,
)
from i18n_magic.models import GlobPatternRule, KeyAssociation

logger = logging.getLogger(__name__)

IGNORED_DIRECTORIES = ("**/node_modules/**",)


def resolve_files(
        glob_patterns: Sequence[GlobPatternRule],
        root_dir: str,
        exclude_patterns: Iterable[str] = ()
) -> List[str]:
    """
    Expand every rule's pattern (scoped or not) into a list of files.

    Paths are returned relative to ``root_dir`` with '/' separators, in the
    order the glob walker yields them. Patterns pointing at directories that
    do not exist simply match nothing.
    """
    patterns = list(dict.fromkeys(strip_dot_slash(rule.pattern) for rule in glob_patterns))
    if not patterns:
        return []
    negations = [f"!{strip_dot_slash(p)}" for p in (*IGNORED_DIRECTORIES, *exclude_patterns)]
    matches = wcglob.glob(
        patterns + negations,
        flags=GLOB_FLAGS | wcglob.NEGATE | wcglob.NODIR,
        root_dir=root_dir,
    )
    return list(dict.fromkeys(path.replace(os.sep, '/') for path in matches))


def _read_file(path: str) -> str:
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        return f.read()


async def extract_keys(
        glob_patterns: Sequence[GlobPatternRule],
        default_namespace: str,
        root_dir: Optional[str] = None,
        functions: Iterable[str] = DEFAULT_FUNCTIONS,
        exclude_patterns: Iterable[str] = ()
) -> List[KeyAssociation]:
    """
    Scan all matched source files for translation calls.

    Args:
        glob_patterns: The configured glob rules.
        default_namespace: Namespace for files no scoped rule matches.
        root_dir: Directory the patterns are relative to (defaults to CWD).
        functions: Translation function names to recognise.
        exclude_patterns: Extra globs to leave out of the scan.

    Returns:
        One KeyAssociation per call site, in file order then source order.
    """
    root_dir = root_dir or os.getcwd()
    functions = tuple(functions)
    files = resolve_files(glob_patterns, root_dir, exclude_patterns)
    logger.debug("Scanning %d files under '%s'", len(files), root_dir)

    contents = await asyncio.gather(
        *(asyncio.to_thread(_read_file, os.path.join(root_dir, file)) for file in files)
    )

    associations: List[KeyAssociation] = []
    for file, content in zip(files, contents):
        namespaces = tuple(get_namespaces_for_file(file, glob_patterns, default_namespace))
        for key in parse_keys_from_text(content, functions):
            associations.append(KeyAssociation(key=key, file=file, namespaces=namespaces))

    logger.debug("Found %d translation call sites", len(associations))
    return associations
