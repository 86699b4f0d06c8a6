"""Extract translation keys from source code and keep namespaced locale JSON files in sync."""

__version__ = "0.3.0"
