"""Tests for the i18n-magic command-line interface."""
from unittest.mock import AsyncMock, patch

import pytest
import yaml

from i18n_magic import __version__
from i18n_magic.cli import build_parser, main
from tests.conftest import fake_translator, read_locale, write_locale


@pytest.fixture
def cli_project(project_dir, monkeypatch):
    """The sample project plus a config file, with logging setup and API keys isolated."""
    config = {
        "load_path": "locales/{{lng}}/{{ns}}.json",
        "locales": ["en", "de"],
        "default_locale": "en",
        "namespaces": ["common", "dashboard", "mobile"],
        "default_namespace": "common",
        "glob_patterns": [
            "./src/shared/**/*.{ts,tsx}",
            {"pattern": "./src/dashboard/**/*.{ts,tsx}", "namespaces": ["dashboard"]},
            {"pattern": "./src/mobile/**/*.{ts,tsx}", "namespaces": ["mobile"]},
        ],
        "show_progress": False,
    }
    (project_dir / "i18n-magic.yaml").write_text(yaml.safe_dump(config), encoding="utf-8")
    monkeypatch.chdir(project_dir)
    for name in ("I18N_MAGIC_CONFIG_FILE", "I18N_MAGIC_MODEL", "OPENAI_API_KEY", "GEMINI_API_KEY"):
        monkeypatch.delenv(name, raising=False)
    with patch("i18n_magic.cli.setup_logger"), patch("i18n_magic.app_config.setup_logger"):
        yield project_dir


def _fill_default_locale(root):
    write_locale(root, "en", "common", {"loading": "Loading"})
    write_locale(root, "en", "dashboard", {"title": "Dashboard", "welcome": "Welcome"})
    write_locale(root, "en", "mobile", {"greeting": "Hi {{name}}"})


def test_parser_replace_accepts_positional_and_option():
    parser = build_parser()

    assert parser.parse_args(["replace", "loading"]).key == "loading"
    assert parser.parse_args(["replace", "-k", "loading"]).key_option == "loading"
    prune_args = parser.parse_args(["prune", "common", "shared", "src/a/**", "--exclude", "src/a/b/**"])
    assert prune_args.patterns == ["src/a/**"]
    assert prune_args.exclude == ["src/a/b/**"]
    assert prune_args.include == []


def test_version(capsys):
    with pytest.raises(SystemExit) as exc_info:
        main(["--version"])

    assert exc_info.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_check_missing_exit_codes(cli_project):
    assert main(["check-missing"]) == 1

    _fill_default_locale(cli_project)

    assert main(["check-missing"]) == 0


def test_explicit_config_path(cli_project, tmp_path_factory, monkeypatch):
    monkeypatch.chdir(tmp_path_factory.mktemp("elsewhere"))
    _fill_default_locale(cli_project)

    assert main(["-c", str(cli_project / "i18n-magic.yaml"), "check-missing"]) == 0


def test_missing_config_file_fails(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    monkeypatch.delenv("I18N_MAGIC_CONFIG_FILE", raising=False)

    with patch("i18n_magic.cli.setup_logger"):
        assert main(["clean"]) == 1


def test_clean(cli_project):
    write_locale(cli_project, "en", "common", {"loading": "Loading", "stale": "Old"})

    assert main(["clean"]) == 0
    assert read_locale(cli_project, "en", "common") == {"loading": "Loading"}


def test_sync_requires_api_key(cli_project):
    assert main(["sync"]) == 1


def test_sync_with_translator(cli_project, monkeypatch):
    monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
    write_locale(cli_project, "en", "common", {"loading": "Loading"})

    with patch("i18n_magic.app_config.create_openai_translator", return_value=fake_translator()):
        assert main(["sync"]) == 0

    assert read_locale(cli_project, "de", "common") == {"loading": "[German] Loading"}


def test_scan_without_translation(cli_project):
    config_path = cli_project / "i18n-magic.yaml"
    config = yaml.safe_load(config_path.read_text(encoding="utf-8"))
    config["disable_translation_during_scan"] = True
    config_path.write_text(yaml.safe_dump(config), encoding="utf-8")

    with patch("i18n_magic.cli.ask", new=AsyncMock(return_value="Text")) as mock_ask:
        assert main(["scan"]) == 0

    assert mock_ask.await_count == 4
    assert read_locale(cli_project, "en", "mobile") == {"greeting": "Text"}


def test_add_key(cli_project):
    assert main(["add-key", "mobile:fresh", "Fresh"]) == 0
    assert read_locale(cli_project, "en", "mobile") == {"fresh": "Fresh"}


def test_prune(cli_project):
    write_locale(cli_project, "en", "common", {"loading": "Loading", "other": "Other"})

    assert main(["prune", "common", "shared", "src/shared/**/*.tsx"]) == 0
    assert read_locale(cli_project, "en", "shared") == {"loading": "Loading"}
    assert read_locale(cli_project, "de", "shared") == {}
