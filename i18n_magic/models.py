"""Plain value types shared by the extractor, reconciler and commands."""
from dataclasses import dataclass, field
from typing import List, Tuple


@dataclass(frozen=True)
class GlobPatternRule:
    """
    A source glob, optionally scoped to a set of namespaces.

    A rule without namespaces only widens the set of scanned files; a rule
    with namespaces attributes every key found in matching files to them.
    """
    pattern: str
    namespaces: Tuple[str, ...] = ()

    @property
    def is_scoped(self) -> bool:
        return bool(self.namespaces)


@dataclass(frozen=True)
class KeyAssociation:
    """One translation call site: the raw key, its file and the file's namespaces."""
    key: str
    file: str
    namespaces: Tuple[str, ...]


@dataclass
class MissingKey:
    """A key referenced in source but absent from the default-locale document of its namespaces."""
    key: str
    primary_namespace: str
    namespaces: List[str] = field(default_factory=list)
