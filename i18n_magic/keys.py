"""Key-level helpers: namespace prefixes, file-to-namespace matching and call-site scanning."""
import re
from functools import lru_cache
from typing import Iterable, List, Optional, Sequence, Tuple

from wcmatch import glob as wcglob

from i18n_magic.models import GlobPatternRule

NAMESPACE_SEPARATOR = ':'

# ** spans directories, {a,b} expands; both are needed for the usual
# "src/**/*.{ts,tsx}" style patterns.
GLOB_FLAGS = wcglob.GLOBSTAR | wcglob.BRACE

DEFAULT_FUNCTIONS: Tuple[str, ...] = ("t", "t.rich")

_ESCAPED_CHAR_RE = re.compile(r"\\(['\"`\\])")


def get_pure_key(key: str, namespace: str, is_default: bool) -> Optional[str]:
    """
    Strip the namespace prefix from a raw key, for one target namespace.

    Args:
        key: The raw key as written in source (e.g. "dashboard:title").
        namespace: The namespace the key is being resolved against.
        is_default: Whether ``namespace`` is the default namespace.

    Returns:
        The namespace-local key, or None if the raw key does not belong
        to ``namespace``.
    """
    prefix, separator, rest = key.partition(NAMESPACE_SEPARATOR)
    if not separator:
        return key if is_default else None
    if prefix == namespace:
        return rest
    return None


def strip_dot_slash(path: str) -> str:
    """Drop one leading './' and normalise Windows separators."""
    path = path.replace('\\', '/')
    if path.startswith('./'):
        return path[2:]
    return path


def get_namespaces_for_file(
        file_path: str,
        glob_patterns: Sequence[GlobPatternRule],
        default_namespace: str
) -> List[str]:
    """
    Return the namespaces a source file contributes keys to.

    Only namespace-scoped rules count; a file that matches none of them
    belongs to the default namespace. Matches from several rules are unioned
    in rule order.
    """
    candidates = dict.fromkeys([file_path.replace('\\', '/'), strip_dot_slash(file_path)])
    namespaces: List[str] = []
    for rule in glob_patterns:
        if not rule.is_scoped:
            continue
        pattern = strip_dot_slash(rule.pattern)
        if any(wcglob.globmatch(candidate, pattern, flags=GLOB_FLAGS) for candidate in candidates):
            for namespace in rule.namespaces:
                if namespace not in namespaces:
                    namespaces.append(namespace)
    if not namespaces:
        return [default_namespace]
    return namespaces


@lru_cache(maxsize=32)
def _call_site_regex(functions: Tuple[str, ...]) -> re.Pattern:
    # Longest names first so "t.rich(" is not read as "t" followed by junk.
    names = '|'.join(re.escape(name) for name in sorted(functions, key=len, reverse=True))
    return re.compile(
        r"(?<![\w$])(?:" + names + r")\s*\(\s*"
        r"(?:(?P<quote>['\"])(?P<literal>(?:\\.|(?!(?P=quote))[^\\\n])*)(?P=quote)"
        r"|`(?P<template>(?:\\.|[^`\\$]|\$(?!\{))*)`)"
    )


def parse_keys_from_text(text: str, functions: Iterable[str] = DEFAULT_FUNCTIONS) -> List[str]:
    """
    Collect the literal first argument of every translation call in ``text``.

    Dynamic arguments (variables, template literals with interpolation) are
    skipped. Keys are returned in source order, duplicates included.
    """
    regex = _call_site_regex(tuple(functions))
    keys = []
    for match in regex.finditer(text):
        raw = match.group('literal')
        if raw is None:
            raw = match.group('template')
        key = _ESCAPED_CHAR_RE.sub(r'\1', raw)
        if key:
            keys.append(key)
    return keys
