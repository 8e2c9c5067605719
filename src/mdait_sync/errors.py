"""Exception hierarchy for mdait_sync.

Errors that describe bad input (configuration, front matter) also derive
from ``ValueError`` so callers that only know about builtin exceptions can
still catch them.
"""


class MdaitSyncError(Exception):
    """Base class for all errors raised by mdait_sync."""


class ConfigError(MdaitSyncError, ValueError):
    """Invalid or incomplete configuration."""


class FrontMatterError(MdaitSyncError, ValueError):
    """Front matter block that cannot be parsed as a YAML mapping."""


class RegistryParseError(MdaitSyncError):
    """Unit registry file is corrupt (invalid line, misbucketed or duplicate key).

    Attributes:
        line_number: 1-based line number where the problem was found.
    """

    def __init__(self, message: str, line_number: int | None = None) -> None:
        if line_number is not None:
            message = f"Line {line_number}: {message}"
        super().__init__(message)
        self.line_number = line_number
