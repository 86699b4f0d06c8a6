"""Load/save access to the per-locale, per-namespace JSON documents."""
import asyncio
import json
import logging
import os
import tempfile
from abc import ABC, abstractmethod
from typing import Awaitable, Callable, Dict, Optional, Union

from i18n_magic.errors import ConfigurationError, DocumentParseError

logger = logging.getLogger(__name__)

LocaleLoader = Callable[[str, str], Awaitable[Dict[str, str]]]
LocaleSaver = Callable[[str, str, Dict[str, str]], Awaitable[None]]

LOCALE_PLACEHOLDER = '{{lng}}'
NAMESPACE_PLACEHOLDER = '{{ns}}'


def resolve_path_template(template: str, locale: str, namespace: str) -> str:
    return template.replace(LOCALE_PLACEHOLDER, locale).replace(NAMESPACE_PLACEHOLDER, namespace)


class LocaleStore(ABC):
    """Where the (locale, namespace) documents live."""

    @abstractmethod
    async def load(self, locale: str, namespace: str) -> Dict[str, str]:
        """Return the document, or an empty mapping if it does not exist yet."""

    @abstractmethod
    async def write(self, locale: str, namespace: str, translations: Dict[str, str]) -> None:
        """Persist the full document, replacing what was there."""

    @abstractmethod
    async def exists(self, locale: str, namespace: str) -> bool:
        """Whether the document is already present."""

    def describe(self, locale: str, namespace: str) -> str:
        return f"{locale}:{namespace}"


class PathTemplateStore(LocaleStore):
    """
    Documents stored as JSON files addressed by a path template such as
    ``locales/{{lng}}/{{ns}}.json``.

    Load and save templates may differ (e.g. loading from a build output while
    saving into the source tree). Relative templates are resolved against
    ``base_dir`` when one is given.
    """

    def __init__(self, load_path: str, save_path: Optional[str] = None, base_dir: Optional[str] = None):
        self.load_path = load_path
        self.save_path = save_path or load_path
        self.base_dir = base_dir

    def _resolve(self, template: str, locale: str, namespace: str) -> str:
        path = resolve_path_template(template, locale, namespace)
        if self.base_dir and not os.path.isabs(path):
            path = os.path.join(self.base_dir, path)
        return path

    def load_file_path(self, locale: str, namespace: str) -> str:
        return self._resolve(self.load_path, locale, namespace)

    def save_file_path(self, locale: str, namespace: str) -> str:
        return self._resolve(self.save_path, locale, namespace)

    def describe(self, locale: str, namespace: str) -> str:
        return self.load_file_path(locale, namespace)

    def _read(self, locale: str, namespace: str) -> Dict[str, str]:
        path = self.load_file_path(locale, namespace)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                content = f.read()
        except FileNotFoundError:
            logger.debug("Locale file '%s' does not exist yet, treating it as empty.", path)
            return {}

        if not content.strip():
            return {}
        try:
            data = json.loads(content)
        except json.JSONDecodeError as json_exc:
            raise DocumentParseError(locale, namespace, path, json_exc) from json_exc
        if not isinstance(data, dict):
            raise DocumentParseError(
                locale, namespace, path, ValueError(f"expected a JSON object, got {type(data).__name__}")
            )
        return data

    def _write(self, locale: str, namespace: str, translations: Dict[str, str]) -> None:
        path = self.save_file_path(locale, namespace)
        directory = os.path.dirname(path) or '.'
        os.makedirs(directory, exist_ok=True)

        # Write to a sibling temp file and swap it in, so readers never see half a document.
        fd, temp_path = tempfile.mkstemp(dir=directory, prefix='.tmp-', suffix='.json')
        try:
            with os.fdopen(fd, 'w', encoding='utf-8') as f:
                json.dump(translations, f, ensure_ascii=False, indent=2)
                f.write('\n')
            os.replace(temp_path, path)
        except BaseException:
            if os.path.exists(temp_path):
                os.remove(temp_path)
            raise
        logger.debug("Wrote %d keys to '%s'", len(translations), path)

    async def load(self, locale: str, namespace: str) -> Dict[str, str]:
        return await asyncio.to_thread(self._read, locale, namespace)

    async def write(self, locale: str, namespace: str, translations: Dict[str, str]) -> None:
        await asyncio.to_thread(self._write, locale, namespace, translations)

    async def exists(self, locale: str, namespace: str) -> bool:
        return await asyncio.to_thread(os.path.exists, self.load_file_path(locale, namespace))


class CallbackStore(LocaleStore):
    """Documents handled entirely by user-supplied async loader/saver callables."""

    def __init__(self, loader: LocaleLoader, saver: LocaleSaver):
        self.loader = loader
        self.saver = saver

    async def load(self, locale: str, namespace: str) -> Dict[str, str]:
        data = await self.loader(locale, namespace)
        return dict(data) if data else {}

    async def write(self, locale: str, namespace: str, translations: Dict[str, str]) -> None:
        await self.saver(locale, namespace, translations)

    async def exists(self, locale: str, namespace: str) -> bool:
        # The storage behind the callables is opaque; the loader decides what "missing" means.
        return True


def create_locale_store(
        load_path: Union[str, LocaleLoader],
        save_path: Union[str, LocaleSaver, None] = None,
        base_dir: Optional[str] = None
) -> LocaleStore:
    """
    Pick the store implementation for the configured load/save targets.

    Raises:
        ConfigurationError: if the targets are missing or mix a path template
            with a callable.
    """
    if save_path is None and isinstance(load_path, str):
        save_path = load_path
    if isinstance(load_path, str) and isinstance(save_path, str):
        if not load_path or not save_path:
            raise ConfigurationError("'load_path' and 'save_path' must not be empty.")
        return PathTemplateStore(load_path, save_path, base_dir)
    if callable(load_path) and callable(save_path):
        return CallbackStore(load_path, save_path)
    raise ConfigurationError(
        "'load_path' and 'save_path' must both be path templates or both be async callables."
    )
