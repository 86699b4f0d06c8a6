"""Locale code to display-name table used when talking to the translation service."""
from typing import Dict, List, Optional

# Codes follow the ones projects actually use in their locale folders,
# including the legacy country-style codes (dk, cn, cz, ...).
LANGUAGE_CODES: Dict[str, str] = {
    "de": "German",
    "en": "English",
    "es": "Spanish",
    "fr": "French",
    "dk": "Danish",
    "da": "Danish",
    "cn": "Chinese",
    "zh": "Chinese",
    "ru": "Russian",
    "it": "Italian",
    "nl": "Dutch",
    "pt": "Portuguese",
    "tr": "Turkish",
    "pl": "Polish",
    "ua": "Ukrainian",
    "uk": "Ukrainian",
    "fi": "Finnish",
    "no": "Norwegian",
    "sv": "Swedish",
    "cz": "Czech",
    "cs": "Czech",
    "gr": "Greek",
    "el": "Greek",
    "jp": "Japanese",
    "ja": "Japanese",
    "kr": "Korean",
    "ko": "Korean",
    "ro": "Romanian",
    "hr": "Croatian",
    "hu": "Hungarian",
    "sk": "Slovak",
    "hi": "Hindi",
    "ta": "Tamil",
    "id": "Indonesian",
    "vn": "Vietnamese",
    "vi": "Vietnamese",
}


def build_language_codes(locales_list: List[Dict[str, str]]) -> Dict[str, str]:
    """Merge ``supported_locales`` entries ({code, name}) from the config over the built-in table."""
    language_codes = dict(LANGUAGE_CODES)
    for locale in locales_list:
        code = locale.get('code')
        name = locale.get('name')
        if code and name:
            language_codes[code] = name
    return language_codes


def language_code_to_name(language_code: str, language_codes: Optional[Dict[str, str]] = None) -> str:
    """
    Convert a locale code to a human-readable language name.

    Unknown codes are returned verbatim so the translation service still
    gets something meaningful (e.g. "pt-BR").

    Args:
        language_code: The locale code (e.g., "de").
        language_codes: Optional table to use instead of the built-in one.

    Returns:
        The language name if known, else the code itself.
    """
    table = LANGUAGE_CODES if language_codes is None else language_codes
    return table.get(language_code, language_code)
