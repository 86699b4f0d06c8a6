"""Unit tests for the locale document stores."""
import json
import os

import pytest

from i18n_magic.errors import ConfigurationError, DocumentParseError
from i18n_magic.locale_store import (
    CallbackStore,
    PathTemplateStore,
    create_locale_store,
    resolve_path_template,
)


def test_resolve_path_template():
    assert resolve_path_template("locales/{{lng}}/{{ns}}.json", "de", "common") == "locales/de/common.json"


class TestPathTemplateStore:

    @pytest.mark.asyncio
    async def test_write_then_load_returns_equal_mapping(self, tmp_path):
        store = PathTemplateStore("locales/{{lng}}/{{ns}}.json", base_dir=str(tmp_path))
        data = {"hello": "Hallo", "umlaut": "Grüße", "nested.key": "Wert"}

        await store.write("de", "common", data)

        assert await store.load("de", "common") == data

    @pytest.mark.asyncio
    async def test_write_creates_directories_and_pretty_prints(self, tmp_path):
        store = PathTemplateStore("out/{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        await store.write("fr", "shop", {"b": "2", "a": "1"})

        path = tmp_path / "out" / "fr" / "shop.json"
        content = path.read_text(encoding="utf-8")
        assert content == '{\n  "b": "2",\n  "a": "1"\n}\n'
        assert not [name for name in os.listdir(path.parent) if name.startswith(".tmp-")]

    @pytest.mark.asyncio
    async def test_missing_file_loads_as_empty(self, tmp_path):
        store = PathTemplateStore("locales/{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        assert await store.load("en", "nope") == {}
        assert await store.exists("en", "nope") is False

    @pytest.mark.asyncio
    async def test_empty_file_loads_as_empty(self, tmp_path):
        (tmp_path / "en").mkdir()
        (tmp_path / "en" / "common.json").write_text("  \n", encoding="utf-8")
        store = PathTemplateStore("{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        assert await store.load("en", "common") == {}

    @pytest.mark.asyncio
    async def test_malformed_json_raises_with_path(self, tmp_path):
        (tmp_path / "en").mkdir()
        (tmp_path / "en" / "common.json").write_text('{"broken": ', encoding="utf-8")
        store = PathTemplateStore("{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        with pytest.raises(DocumentParseError) as exc_info:
            await store.load("en", "common")

        error = exc_info.value
        assert error.locale == "en"
        assert error.namespace == "common"
        assert error.path.endswith(os.path.join("en", "common.json"))
        assert isinstance(error.cause, json.JSONDecodeError)

    @pytest.mark.asyncio
    async def test_non_object_json_is_a_parse_error(self, tmp_path):
        (tmp_path / "en").mkdir()
        (tmp_path / "en" / "common.json").write_text('["a", "b"]', encoding="utf-8")
        store = PathTemplateStore("{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        with pytest.raises(DocumentParseError):
            await store.load("en", "common")

    @pytest.mark.asyncio
    async def test_separate_load_and_save_templates(self, tmp_path):
        store = PathTemplateStore("public/{{lng}}/{{ns}}.json", "src/{{lng}}/{{ns}}.json", base_dir=str(tmp_path))

        await store.write("en", "common", {"a": "A"})

        assert (tmp_path / "src" / "en" / "common.json").exists()
        assert await store.load("en", "common") == {}


class TestCallbackStore:

    @pytest.mark.asyncio
    async def test_delegates_to_callables(self):
        saved = {}

        async def loader(locale, namespace):
            return saved.get((locale, namespace), {})

        async def saver(locale, namespace, data):
            saved[(locale, namespace)] = data

        store = CallbackStore(loader, saver)
        await store.write("de", "common", {"x": "y"})

        assert saved == {("de", "common"): {"x": "y"}}
        assert await store.load("de", "common") == {"x": "y"}
        assert await store.load("fr", "common") == {}
        assert await store.exists("fr", "common") is True

    @pytest.mark.asyncio
    async def test_loader_returning_none_is_empty(self):
        async def loader(locale, namespace):
            return None

        async def saver(locale, namespace, data):
            pass

        assert await CallbackStore(loader, saver).load("en", "common") == {}


class TestCreateLocaleStore:

    def test_strings_give_path_store(self, tmp_path):
        store = create_locale_store("locales/{{lng}}/{{ns}}.json", base_dir=str(tmp_path))
        assert isinstance(store, PathTemplateStore)
        assert store.save_path == store.load_path

    def test_callables_give_callback_store(self):
        async def loader(locale, namespace):
            return {}

        async def saver(locale, namespace, data):
            pass

        assert isinstance(create_locale_store(loader, saver), CallbackStore)

    def test_mixed_targets_are_rejected(self):
        async def loader(locale, namespace):
            return {}

        with pytest.raises(ConfigurationError):
            create_locale_store(loader, "locales/{{lng}}/{{ns}}.json")
        with pytest.raises(ConfigurationError):
            create_locale_store(loader)

    def test_empty_template_is_rejected(self):
        with pytest.raises(ConfigurationError):
            create_locale_store("")
