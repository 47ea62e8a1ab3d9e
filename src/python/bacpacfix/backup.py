"""
Backup copies of a .bacpac taken before it is rewritten in place.
"""

import hashlib
import logging
import os
import shutil
from datetime import datetime
from typing import Optional

from .errors import PackageWriteError

logger = logging.getLogger(__name__)

_CHUNK_SIZE = 1024 * 1024


def sha256_file(path: str) -> str:
    """SHA-256 of a file's raw bytes, upper-case hex."""
    digest = hashlib.sha256()
    with open(path, "rb") as fh:
        for chunk in iter(lambda: fh.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest().upper()


def backup_path_for(source_path: str, backup_dir: Optional[str], now: datetime, source_hash: str) -> str:
    root = backup_dir or os.path.dirname(os.path.abspath(source_path))
    stem, suffix = os.path.splitext(os.path.basename(source_path))
    timestamp = now.strftime("%Y%m%d_%H%M%S")
    return os.path.join(root, f"{stem}_original_{timestamp}_{source_hash[:8]}{suffix or '.bacpac'}")


def create_backup(source_path: str, backup_dir: Optional[str] = None) -> str:
    """Copy the untouched package next to it (or into ``backup_dir``) and return the copy's path.

    The name carries a timestamp and the first 8 hex digits of the package
    hash, so repeated runs never collide.
    """
    try:
        path = backup_path_for(source_path, backup_dir, datetime.now(), sha256_file(source_path))
        os.makedirs(os.path.dirname(path), exist_ok=True)
        shutil.copy2(source_path, path)
    except OSError as exc:
        raise PackageWriteError(f"Failed to create backup: {exc}", original_error=exc) from exc
    logger.info(f"Backup written to {path}")
    return path
