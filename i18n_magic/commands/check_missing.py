"""CI check: are there keys used in source without a default-locale value?"""
import logging
from typing import List

from i18n_magic.app_config import I18nConfig
from i18n_magic.models import MissingKey
from i18n_magic.reconciler import get_missing_keys

logger = logging.getLogger(__name__)


async def check_missing(config: I18nConfig) -> List[MissingKey]:
    missing_keys = await get_missing_keys(config)
    if missing_keys:
        logger.error("Missing translations found!")
        for missing in missing_keys:
            logger.error("  - %s (%s)", missing.key, ", ".join(missing.namespaces))
    else:
        logger.info("No missing translations found.")
    return missing_keys
