"""Error types raised by the extraction, storage and translation layers."""
from typing import Optional


class I18nMagicError(Exception):
    """Base class for all errors raised by i18n_magic."""


class ConfigurationError(I18nMagicError):
    """Invalid or missing namespace/locale references, or a malformed config file."""


class DocumentParseError(I18nMagicError):
    """A persisted locale document exists but does not contain a JSON object."""

    def __init__(self, locale: str, namespace: str, path: str, cause: Optional[Exception] = None):
        self.locale = locale
        self.namespace = namespace
        self.path = path
        self.cause = cause
        message = f"Could not parse locale file '{path}' ({locale}:{namespace})"
        if cause is not None:
            message = f"{message}: {cause}"
        super().__init__(message)


class TranslationError(I18nMagicError):
    """
    The batch translation service failed, or its output could not be used.

    Carries the locale (and namespace, when the failure happened while writing
    a single document) so the caller can render a useful message.
    """

    def __init__(
            self,
            message: str,
            locale: Optional[str] = None,
            namespace: Optional[str] = None,
            cause: Optional[BaseException] = None
    ):
        self.locale = locale
        self.namespace = namespace
        self.cause = cause
        super().__init__(message)

    def __str__(self) -> str:
        message = super().__str__()
        if self.cause is not None:
            return f"{message} (cause: {self.cause.__class__.__name__}: {self.cause})"
        return message
