"""
Bacpac fixer

Single entry point for CLI and web callers. Removes AlwaysOn/XTP elements
from a .bacpac's model.xml, reseals the model.xml checksum in origin.xml and
writes both entries back into the package in place.

Run stages: read -> clean -> (backup) -> reseal -> rewrite. A package with
nothing to remove is reported as a successful no-op and left untouched.
The rewrite replaces the package file in one move, but no rollback exists
beyond the optional backup copy taken before it.
"""

import logging
import os
import sys
import traceback
from dataclasses import asdict, dataclass
from typing import Any, Dict, Optional

from .backup import create_backup
from .bacpac_io import MODEL_ENTRY, ORIGIN_ENTRY, read_model_and_origin, replace_entries
from .errors import EXIT_CODES, BacpacFixError, ErrorKind, PackageNotFoundError
from .model_cleaner import clean_model_xml_text
from .origin import compute_model_hash, read_model_checksum, reseal

logger = logging.getLogger(__name__)

NO_CHANGES_MESSAGE = "No changes: no 'AlwaysOn' or 'XTP' entries found."

ENV_DEBUG = "BACPACFIX_DEBUG"
ENV_BACKUP_DIR = "BACPACFIX_BACKUP_DIR"


@dataclass
class FixerOptions:
    """Options for one fixer run."""
    source_bacpac: str
    no_backup: bool = False
    backup_dir: Optional[str] = None
    dry_run: bool = False


@dataclass
class FixResult:
    """Outcome of one fixer run."""
    success: bool
    changed: bool = False
    message: str = ""
    backup_path: Optional[str] = None
    model_hash: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    @property
    def exit_code(self) -> int:
        if self.success:
            return 0
        return EXIT_CODES.get(self.error_kind, 1)

    def as_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["error_kind"] = self.error_kind.value if self.error_kind else None
        data["exit_code"] = self.exit_code
        return data


@dataclass
class CleanResult:
    model_text: str
    origin_text: str
    changed: bool
    model_hash: Optional[str] = None


@dataclass
class VerifyResult:
    model_hash: str
    stored_hash: Optional[str]

    @property
    def matches(self) -> Optional[bool]:
        if self.stored_hash is None:
            return None
        return self.stored_hash.upper() == self.model_hash


def setup_logging(debug: bool = False, log_path: Optional[str] = None) -> None:
    """Setup logging configuration."""
    if not debug and os.environ.get(ENV_DEBUG) == "1":
        debug = True

    level = logging.DEBUG if debug else logging.INFO
    format_str = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'

    logging.basicConfig(
        level=level,
        format=format_str,
        handlers=[
            logging.StreamHandler(sys.stderr),
            logging.FileHandler(log_path) if log_path else logging.NullHandler()
        ]
    )
    logger.debug("Bacpac fixer logging initialized")


def clean_and_reseal(model_text: str, origin_text: str) -> CleanResult:
    """Clean model.xml text and, when it changed, reseal origin.xml text.

    Pure in-memory counterpart of process_bacpac for callers that hold the
    entry texts themselves.
    """
    new_model_text, changed = clean_model_xml_text(model_text)
    if not changed:
        return CleanResult(new_model_text, origin_text, False)
    model_hash, new_origin_text = reseal(new_model_text, origin_text)
    return CleanResult(new_model_text, new_origin_text, True, model_hash)


def validate_options(options: FixerOptions) -> None:
    if not options.source_bacpac or not options.source_bacpac.strip():
        raise PackageNotFoundError("Source .bacpac path is required.")
    if not os.path.isfile(options.source_bacpac):
        raise PackageNotFoundError(f".bacpac file not found: {options.source_bacpac}")


def process_bacpac(options: FixerOptions) -> FixResult:
    """
    Remove AlwaysOn/XTP features from a .bacpac in place.

    Args:
        options: Source path plus backup and dry-run settings

    Returns:
        FixResult. Classified failures never raise; they come back with
        ``success=False`` and an ``error_kind``.
    """
    source = options.source_bacpac
    backup_path = None
    model_hash = None
    logger.info(f"Processing {source}")

    try:
        validate_options(options)

        model_text, origin_text = read_model_and_origin(source)
        new_model_text, changed = clean_model_xml_text(model_text)
        if not changed:
            logger.info(NO_CHANGES_MESSAGE)
            return FixResult(success=True, changed=False, message=NO_CHANGES_MESSAGE)

        if options.dry_run:
            return FixResult(
                success=True,
                changed=False,
                message=f"Dry run: AlwaysOn/XTP entries found in {source}; package not modified.",
                model_hash=compute_model_hash(new_model_text),
            )

        if not options.no_backup:
            backup_path = create_backup(source, options.backup_dir)

        model_hash, new_origin_text = reseal(new_model_text, origin_text)
        logger.info(f"New model.xml SHA-256: {model_hash}")

        replace_entries(source, {MODEL_ENTRY: new_model_text, ORIGIN_ENTRY: new_origin_text})

    except BacpacFixError as e:
        logger.error(str(e))
        logger.debug(f"Full traceback: {traceback.format_exc()}")
        return FixResult(
            success=False,
            message=str(e),
            backup_path=backup_path,
            model_hash=model_hash,
            error_kind=e.kind,
        )
    except Exception as e:
        logger.error(f"Unexpected failure: {e}")
        logger.debug(f"Full traceback: {traceback.format_exc()}")
        return FixResult(success=False, message=f"Unexpected failure: {e}", backup_path=backup_path)

    return FixResult(
        success=True,
        changed=True,
        message=f"Updated package in place: {source}",
        backup_path=backup_path,
        model_hash=model_hash,
    )


def verify_bacpac(bacpac_path: str) -> VerifyResult:
    """Compare the stored model.xml checksum in origin.xml with the hash of model.xml."""
    if not os.path.isfile(bacpac_path):
        raise PackageNotFoundError(f".bacpac file not found: {bacpac_path}")
    model_text, origin_text = read_model_and_origin(bacpac_path)
    return VerifyResult(compute_model_hash(model_text), read_model_checksum(origin_text))
