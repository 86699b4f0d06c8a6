"""Application configuration for the i18n-magic commands."""
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

import yaml
from dotenv import load_dotenv

from i18n_magic.errors import ConfigurationError
from i18n_magic.keys import DEFAULT_FUNCTIONS
from i18n_magic.languages import LANGUAGE_CODES, build_language_codes
from i18n_magic.locale_store import LocaleStore, create_locale_store
from i18n_magic.logging_config import setup_logger
from i18n_magic.models import GlobPatternRule
from i18n_magic.translation import DEFAULT_CHUNK_SIZE, Translator, create_openai_translator

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = 'i18n-magic.yaml'
DEFAULT_MODEL = 'gpt-4o-mini'


@dataclass
class I18nConfig:
    """Everything one command run needs; passed explicitly to every engine."""
    # Locales and namespaces
    locales: List[str]
    default_locale: str
    namespaces: List[str]
    default_namespace: str

    # Sources and storage
    glob_patterns: List[GlobPatternRule]
    store: LocaleStore
    root_dir: str = field(default_factory=os.getcwd)
    functions: Sequence[str] = DEFAULT_FUNCTIONS

    # Translation
    translator: Optional[Translator] = None
    context: Optional[str] = None
    model: str = DEFAULT_MODEL
    translation_chunk_size: int = DEFAULT_CHUNK_SIZE
    language_codes: Dict[str, str] = field(default_factory=lambda: dict(LANGUAGE_CODES))

    # Behaviour
    disable_translation_during_scan: bool = False
    auto_clear: bool = False
    show_progress: bool = True

    def __post_init__(self):
        if not self.locales:
            raise ConfigurationError("'locales' must list at least one locale.")
        if not self.namespaces:
            raise ConfigurationError("'namespaces' must list at least one namespace.")
        if self.default_locale not in self.locales:
            raise ConfigurationError(
                f"Default locale '{self.default_locale}' is not one of the configured locales: "
                f"{', '.join(self.locales)}"
            )
        if self.default_namespace not in self.namespaces:
            raise ConfigurationError(
                f"Default namespace '{self.default_namespace}' is not one of the configured namespaces: "
                f"{', '.join(self.namespaces)}"
            )
        for rule in self.glob_patterns:
            unknown = [ns for ns in rule.namespaces if ns not in self.namespaces]
            if unknown:
                raise ConfigurationError(
                    f"Glob pattern '{rule.pattern}' refers to unknown namespace(s): {', '.join(unknown)}"
                )
        if self.translation_chunk_size < 1:
            raise ConfigurationError("'translation_chunk_size' must be at least 1.")

    @property
    def other_locales(self) -> List[str]:
        return [locale for locale in self.locales if locale != self.default_locale]

    def require_namespace(self, namespace: str) -> None:
        if namespace not in self.namespaces:
            raise ConfigurationError(f"Namespace '{namespace}' not found in configuration")

    def require_translator(self) -> Translator:
        if self.translator is None:
            raise ConfigurationError(
                "No translation service configured. Set OPENAI_API_KEY (or GEMINI_API_KEY for Gemini models)."
            )
        return self.translator


def parse_glob_patterns(raw_patterns: Any) -> List[GlobPatternRule]:
    """
    Turn the ``glob_patterns`` config entry into rules.

    Entries are either plain glob strings or ``{pattern, namespaces}``
    mappings with a non-empty namespace list.
    """
    if not isinstance(raw_patterns, list) or not raw_patterns:
        raise ConfigurationError("'glob_patterns' must be a non-empty list.")

    rules = []
    for entry in raw_patterns:
        if isinstance(entry, str):
            rules.append(GlobPatternRule(pattern=entry))
        elif isinstance(entry, dict):
            pattern = entry.get('pattern')
            namespaces = entry.get('namespaces')
            if not isinstance(pattern, str) or not pattern:
                raise ConfigurationError(f"Glob pattern entry {entry!r} is missing 'pattern'.")
            if not isinstance(namespaces, list) or not namespaces:
                raise ConfigurationError(f"Glob pattern '{pattern}' must list at least one namespace.")
            rules.append(GlobPatternRule(pattern=pattern, namespaces=tuple(namespaces)))
        else:
            raise ConfigurationError(f"Unsupported glob pattern entry: {entry!r}")
    return rules


def _load_yaml_config(config_file: str) -> Dict[str, Any]:
    """Read the YAML configuration file; unlike logging settings, there are no usable defaults here."""
    if not os.path.isabs(config_file):
        config_file = os.path.abspath(config_file)

    if not os.path.exists(config_file):
        raise ConfigurationError(
            f"Configuration file '{config_file}' not found. Create one or set I18N_MAGIC_CONFIG_FILE."
        )
    try:
        with open(config_file, 'r', encoding='utf-8') as config_file_stream:
            loaded_config = yaml.safe_load(config_file_stream)
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Invalid YAML in configuration file '{config_file}': {e}") from e
    except OSError as e:
        raise ConfigurationError(f"Could not read configuration file '{config_file}': {e}") from e

    if not isinstance(loaded_config, dict):
        raise ConfigurationError(f"Configuration file '{config_file}' must contain a YAML dictionary.")
    return loaded_config


def _setup_logger_from_config(config: Dict[str, Any]) -> logging.Logger:
    log_config = config.get('logging', {}) or {}
    log_level_str = log_config.get('log_level', 'INFO').upper()
    log_file_path = log_config.get('log_file_path')
    log_to_console = log_config.get('log_to_console', True)
    return setup_logger(log_level_str, log_file_path, log_to_console)


def _resolve_api_key(model: str) -> Optional[str]:
    if 'gemini' in model:
        return os.environ.get('GEMINI_API_KEY')
    return os.environ.get('OPENAI_API_KEY')


def _create_translator(config: Dict[str, Any], model: str, required: bool) -> Optional[Translator]:
    api_key = _resolve_api_key(model)
    if not api_key:
        if not required:
            return None
        key_name = 'GEMINI_API_KEY' if 'gemini' in model else 'OPENAI_API_KEY'
        raise ConfigurationError(f"Please provide {key_name} in your environment or .env file.")

    translator = create_openai_translator(
        api_key,
        model,
        max_concurrent_api_calls=config.get('max_concurrent_api_calls', 1),
        max_requests_per_minute=config.get('max_requests_per_minute', 60),
        max_model_tokens=config.get('max_model_tokens', 16000)
    )
    logger.debug("Translation client initialized for model '%s'", model)
    return translator


def load_app_config(
        config_path: Optional[str] = None,
        env_path: Optional[str] = None,
        with_translator: bool = True
) -> I18nConfig:
    """
    Load the configuration from the YAML file and the environment.

    Args:
        config_path: Config file; defaults to $I18N_MAGIC_CONFIG_FILE, then
            ./i18n-magic.yaml.
        env_path: .env file to load first; defaults to ./.env if present.
        with_translator: Require the OpenAI translator. Without it the
            translator is still built when an API key is available.

    Returns:
        I18nConfig: The validated configuration.
    """
    env_file = env_path or os.path.join(os.getcwd(), '.env')
    if os.path.exists(env_file):
        load_dotenv(env_file)

    config_file = config_path or os.environ.get('I18N_MAGIC_CONFIG_FILE', DEFAULT_CONFIG_FILE)
    config = _load_yaml_config(config_file)

    _setup_logger_from_config(config)
    logger.debug("Loaded configuration from: %s", os.path.abspath(config_file))

    # Paths in the config are relative to the config file's directory.
    root_dir = config.get('root_dir') or os.path.dirname(os.path.abspath(config_file))

    missing = [name for name in ('load_path', 'locales', 'default_locale', 'namespaces', 'default_namespace')
               if name not in config]
    if missing:
        raise ConfigurationError(f"Missing required configuration value(s): {', '.join(missing)}")

    model = os.environ.get('I18N_MAGIC_MODEL', config.get('model', DEFAULT_MODEL))
    translator = _create_translator(config, model, required=with_translator)

    return I18nConfig(
        locales=list(config['locales']),
        default_locale=config['default_locale'],
        namespaces=list(config['namespaces']),
        default_namespace=config['default_namespace'],
        glob_patterns=parse_glob_patterns(config.get('glob_patterns')),
        store=create_locale_store(config['load_path'], config.get('save_path'), base_dir=root_dir),
        root_dir=root_dir,
        functions=tuple(config.get('functions', DEFAULT_FUNCTIONS)),
        translator=translator,
        context=config.get('context'),
        model=model,
        translation_chunk_size=config.get('translation_chunk_size', DEFAULT_CHUNK_SIZE),
        language_codes=build_language_codes(config.get('supported_locales', [])),
        disable_translation_during_scan=config.get('disable_translation_during_scan', False),
        auto_clear=config.get('auto_clear', False),
        show_progress=config.get('show_progress', True),
    )
