"""
Error taxonomy for bacpac processing.

Every stage raises a BacpacFixError subclass; the fixer turns them into a
failed result with a one-line message.
"""

from enum import Enum
from typing import Optional


class ErrorKind(Enum):
    """Classification of a failed run."""
    NOT_FOUND = "not_found"
    MISSING_ENTRY = "missing_entry"
    PARSE_FAILURE = "parse_failure"
    READ_FAILURE = "read_failure"
    WRITE_FAILURE = "write_failure"


EXIT_CODES = {
    ErrorKind.NOT_FOUND: 2,
    ErrorKind.MISSING_ENTRY: 3,
    ErrorKind.PARSE_FAILURE: 4,
    ErrorKind.READ_FAILURE: 5,
    ErrorKind.WRITE_FAILURE: 6,
}


class BacpacFixError(Exception):
    """Base error carrying a kind and the underlying cause."""
    kind: Optional[ErrorKind] = None

    def __init__(self, message: str, technical_details: str = "", original_error: Exception = None):
        super().__init__(message)
        self.technical_details = technical_details
        self.original_error = original_error

    @property
    def exit_code(self) -> int:
        return EXIT_CODES.get(self.kind, 1)


class PackageNotFoundError(BacpacFixError):
    kind = ErrorKind.NOT_FOUND


class MissingEntryError(BacpacFixError):
    kind = ErrorKind.MISSING_ENTRY


class XmlParseError(BacpacFixError):
    kind = ErrorKind.PARSE_FAILURE


class PackageReadError(BacpacFixError):
    kind = ErrorKind.READ_FAILURE


class PackageWriteError(BacpacFixError):
    kind = ErrorKind.WRITE_FAILURE
