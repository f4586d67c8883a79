"""Errors raised while importing API documents.

Any of these aborts the whole import; nothing is persisted.
"""


class SpecImportError(ValueError):
    """Base class for import failures."""


class SpecFormatError(SpecImportError):
    """Input is neither valid JSON nor valid YAML."""


class UnsupportedVersionError(SpecImportError):
    """Recognized format, unsupported version."""


class SchemaError(SpecImportError):
    """Recognized format and version, but structurally invalid."""


class CurlParseError(SpecImportError):
    """Input is not a usable curl command line."""
