"""Remove AlwaysOn/XTP features from .bacpac packages and reseal their checksums."""

from .errors import (
    BacpacFixError,
    ErrorKind,
    MissingEntryError,
    PackageNotFoundError,
    PackageReadError,
    PackageWriteError,
    XmlParseError,
)
from .fixer import (
    CleanResult,
    FixerOptions,
    FixResult,
    VerifyResult,
    clean_and_reseal,
    process_bacpac,
    verify_bacpac,
)

__version__ = "1.0.0"
