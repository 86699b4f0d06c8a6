"""Command-line entry point."""
import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from i18n_magic import __version__
from i18n_magic.app_config import load_app_config
from i18n_magic.commands.add_key import add_translation_key
from i18n_magic.commands.check_missing import check_missing
from i18n_magic.commands.clean import remove_unused_keys
from i18n_magic.commands.pruned_namespace import PruneOptions, create_pruned_namespace
from i18n_magic.commands.replace import replace_translation
from i18n_magic.commands.scan import translate_missing
from i18n_magic.commands.sync_locales import sync_locales
from i18n_magic.errors import I18nMagicError
from i18n_magic.logging_config import setup_logger
from i18n_magic.models import MissingKey

logger = logging.getLogger(__name__)

# Commands that cannot do anything useful without the translation service.
TRANSLATING_COMMANDS = {'sync', 'replace'}


async def ask(message: str) -> str:
    return await asyncio.to_thread(input, f"{message} ")


async def ask_for_missing_key(missing: MissingKey) -> str:
    return await ask(f"{missing.key} ({', '.join(missing.namespaces)}):")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='i18n-magic',
        description="Manage your locales JSON with translations, replacements, etc. with OpenAI."
    )
    parser.add_argument('--version', action='version', version=f"%(prog)s {__version__}")
    parser.add_argument('-c', '--config', help="path to config file")
    parser.add_argument('-e', '--env', help="path to .env file")
    subparsers = parser.add_subparsers(dest='command', required=True)

    subparsers.add_parser(
        'scan',
        help="Scan for missing translations, get prompted for each, translate it to the other locales "
             "and save it to the JSON file."
    )
    subparsers.add_parser(
        'sync',
        help="Sync the translations from the default locale to the other locales."
    )
    subparsers.add_parser('clean', help="Remove unused translations from all locales.")
    subparsers.add_parser(
        'check-missing',
        help="Check if there are any missing translations. Exits with 1 if so."
    )

    replace_parser = subparsers.add_parser(
        'replace',
        help="Replace a translation based on the key, and translate it to the other locales."
    )
    replace_parser.add_argument('key', nargs='?', help="translation key to replace")
    replace_parser.add_argument('-k', '--key', dest='key_option', help="translation key to replace")

    add_parser = subparsers.add_parser('add-key', help="Add a key with its default-locale value.")
    add_parser.add_argument('key')
    add_parser.add_argument('value')

    prune_parser = subparsers.add_parser(
        'prune',
        help="Create a namespace holding only the keys used by the given files."
    )
    prune_parser.add_argument('source_namespace')
    prune_parser.add_argument('new_namespace')
    prune_parser.add_argument('patterns', nargs='+', help="glob patterns of the files to keep keys for")
    prune_parser.add_argument('--include', action='append', default=[], help="additional glob to scan")
    prune_parser.add_argument('--exclude', action='append', default=[], help="glob to leave out")

    return parser


async def run_command(args: argparse.Namespace) -> int:
    config = load_app_config(
        config_path=args.config,
        env_path=args.env,
        with_translator=args.command in TRANSLATING_COMMANDS
    )

    if args.command == 'scan':
        await translate_missing(config, ask_for_missing_key)
    elif args.command == 'sync':
        await sync_locales(config)
    elif args.command == 'clean':
        await remove_unused_keys(config)
    elif args.command == 'check-missing':
        if await check_missing(config):
            return 1
    elif args.command == 'replace':
        await replace_translation(config, ask, key=args.key or args.key_option)
    elif args.command == 'add-key':
        added = await add_translation_key(config, args.key, args.value)
        logger.info("Run 'i18n-magic sync' to translate \"%s\" to the other locales.", added.key)
    elif args.command == 'prune':
        response = await create_pruned_namespace(config, PruneOptions(
            source_namespace=args.source_namespace,
            new_namespace=args.new_namespace,
            glob_patterns=args.patterns,
            include_patterns=args.include,
            exclude_patterns=args.exclude
        ))
        if not response.success or not all(result.success for result in response.results):
            return 1
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    # Console logging until the config file says otherwise.
    setup_logger('INFO', None, True)
    try:
        return asyncio.run(run_command(args))
    except I18nMagicError as exc:
        logger.error("%s", exc)
        return 1
    except KeyboardInterrupt:
        logger.warning("Interrupted.")
        return 130


if __name__ == '__main__':
    sys.exit(main())
