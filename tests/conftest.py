import json
import os
from typing import Dict, List
from unittest.mock import AsyncMock

import pytest

from i18n_magic.app_config import I18nConfig
from i18n_magic.locale_store import PathTemplateStore
from i18n_magic.models import GlobPatternRule
from i18n_magic.translation import TranslationRequest

LOCALE_TEMPLATE = "locales/{{lng}}/{{ns}}.json"


class ProjectFiles:
    """Reads and writes sources and locale documents under a project root."""

    def __init__(self, root):
        self.root = str(root)

    def write_source(self, relative_path: str, content: str) -> None:
        write_source(self.root, relative_path, content)

    def write_locale(self, locale: str, namespace: str, data: Dict[str, str]) -> None:
        write_locale(self.root, locale, namespace, data)

    def read_locale(self, locale: str, namespace: str) -> Dict[str, str]:
        return read_locale(self.root, locale, namespace)

    def locale_exists(self, locale: str, namespace: str) -> bool:
        return os.path.exists(os.path.join(self.root, "locales", locale, f"{namespace}.json"))


def write_source(root, relative_path: str, content: str) -> None:
    path = os.path.join(str(root), relative_path)
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        f.write(content)


def write_locale(root, locale: str, namespace: str, data: Dict[str, str]) -> None:
    path = os.path.join(str(root), "locales", locale, f"{namespace}.json")
    os.makedirs(os.path.dirname(path), exist_ok=True)
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(data, f, ensure_ascii=False, indent=2)


def read_locale(root, locale: str, namespace: str) -> Dict[str, str]:
    path = os.path.join(str(root), "locales", locale, f"{namespace}.json")
    with open(path, 'r', encoding='utf-8') as f:
        return json.load(f)


def fake_translator():
    """A translator that prefixes every value with the target language name."""
    async def translate(request: TranslationRequest) -> Dict[str, str]:
        return {key: f"[{request.output_language}] {value}" for key, value in request.data.items()}
    return AsyncMock(side_effect=translate)


@pytest.fixture
def project_dir(tmp_path):
    """A small multi-namespace project: shared files, dashboard and mobile apps."""
    write_source(tmp_path, "src/shared/Button.tsx", 'export const B = () => t("loading")\n')
    write_source(
        tmp_path,
        "src/dashboard/Dashboard.tsx",
        'const title = t("dashboard:title")\nconst hello = t("welcome")\n'
    )
    write_source(tmp_path, "src/mobile/Home.tsx", "<h1>{t('greeting', { name })}</h1>\n")
    write_source(tmp_path, "node_modules/lib/index.js", 't("ignored")\n')
    return tmp_path


@pytest.fixture
def glob_patterns() -> List[GlobPatternRule]:
    return [
        GlobPatternRule("./src/shared/**/*.{ts,tsx}"),
        GlobPatternRule("./src/dashboard/**/*.{ts,tsx}", ("dashboard",)),
        GlobPatternRule("./src/mobile/**/*.{ts,tsx}", ("mobile",)),
    ]


@pytest.fixture
def make_config(project_dir, glob_patterns):
    def _make(**overrides) -> I18nConfig:
        values = dict(
            locales=["en", "de"],
            default_locale="en",
            namespaces=["common", "dashboard", "mobile"],
            default_namespace="common",
            glob_patterns=glob_patterns,
            store=PathTemplateStore(LOCALE_TEMPLATE, base_dir=str(project_dir)),
            root_dir=str(project_dir),
            translator=fake_translator(),
            show_progress=False,
        )
        values.update(overrides)
        return I18nConfig(**values)
    return _make


@pytest.fixture
def files(project_dir) -> ProjectFiles:
    return ProjectFiles(project_dir)
