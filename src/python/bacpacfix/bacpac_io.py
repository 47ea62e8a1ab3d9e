from __future__ import annotations

import codecs
import logging
import os
import posixpath
import shutil
import tempfile
import time
import zipfile
from typing import Dict, Iterable, Optional, Tuple

from .errors import (
    BacpacFixError,
    MissingEntryError,
    PackageNotFoundError,
    PackageReadError,
    PackageWriteError,
)

logger = logging.getLogger(__name__)

MODEL_ENTRY = "model.xml"
ORIGIN_ENTRY = "origin.xml"

_COPY_CHUNK_SIZE = 1024 * 1024

# UTF-32 LE must be tested before UTF-16 LE, it shares the first two bytes.
_BOMS = (
    (codecs.BOM_UTF8, "utf-8-sig"),
    (codecs.BOM_UTF32_LE, "utf-32"),
    (codecs.BOM_UTF32_BE, "utf-32"),
    (codecs.BOM_UTF16_LE, "utf-16"),
    (codecs.BOM_UTF16_BE, "utf-16"),
)


def find_entry(infos: Iterable[zipfile.ZipInfo], target_name: str) -> Optional[zipfile.ZipInfo]:
    """Find an entry by name case-insensitively, matching the full path or the file name.

    First match wins.
    """
    target = target_name.lower()
    for info in infos:
        full = info.filename.replace("\\", "/")
        if full.lower() == target:
            return info
        if posixpath.basename(full).lower() == target:
            return info
    return None


def decode_entry_text(data: bytes) -> str:
    """Decode entry bytes honoring a byte-order mark, UTF-8 otherwise."""
    for bom, encoding in _BOMS:
        if data.startswith(bom):
            return data.decode(encoding)
    return data.decode("utf-8")


def read_model_and_origin(bacpac_path: str) -> Tuple[str, str]:
    """Return the decoded text of model.xml and origin.xml.

    Both entries are read or neither: a missing entry raises before anything
    is decoded.
    """
    if not os.path.isfile(bacpac_path):
        raise PackageNotFoundError(f".bacpac file not found: {bacpac_path}")

    try:
        with zipfile.ZipFile(bacpac_path, "r") as zin:
            infos = zin.infolist()
            model_info = find_entry(infos, MODEL_ENTRY)
            origin_info = find_entry(infos, ORIGIN_ENTRY)
            missing = [
                name
                for name, info in ((MODEL_ENTRY, model_info), (ORIGIN_ENTRY, origin_info))
                if info is None
            ]
            if missing:
                raise MissingEntryError(
                    f"{' and '.join(missing)} missing in the package.",
                    technical_details=f"entries present: {len(infos)}",
                )
            logger.debug(f"Reading {model_info.filename} and {origin_info.filename} from {bacpac_path}")
            model_text = decode_entry_text(zin.read(model_info))
            origin_text = decode_entry_text(zin.read(origin_info))
    except BacpacFixError:
        raise
    except zipfile.BadZipFile as exc:
        raise PackageReadError(f"Failed to read entries: invalid package (ZIP): {exc}", original_error=exc) from exc
    except OSError as exc:
        raise PackageReadError(f"Failed to read entries: {exc}", original_error=exc) from exc
    except UnicodeDecodeError as exc:
        raise PackageReadError(f"Failed to read entries: undecodable text: {exc}", original_error=exc) from exc
    except Exception as exc:
        raise PackageReadError(f"Failed to read entries: {exc}", original_error=exc) from exc

    return model_text, origin_text


def _replacement_info(name: str, template: Optional[zipfile.ZipInfo] = None) -> zipfile.ZipInfo:
    info = zipfile.ZipInfo(name, date_time=time.localtime(time.time())[:6])
    info.compress_type = zipfile.ZIP_DEFLATED
    if template is not None:
        info.create_system = template.create_system
        info.external_attr = template.external_attr
    else:
        info.external_attr = 0o644 << 16
    return info


def _copy_entry(zin: zipfile.ZipFile, zout: zipfile.ZipFile, item: zipfile.ZipInfo) -> None:
    """Stream one entry across; table data entries can be far larger than memory."""
    if item.is_dir():
        zout.writestr(item, b"")
        return
    # zout.open sizes the local header (zip64 or not) from item.file_size.
    with zin.open(item) as src, zout.open(item, "w") as dst:
        shutil.copyfileobj(src, dst, _COPY_CHUNK_SIZE)


def replace_entries(bacpac_path: str, texts: Dict[str, str]) -> None:
    """Replace the entries named by ``texts`` keys with UTF-8 (no BOM) text.

    The package is streamed to a temporary file beside it, then moved over
    the original. Existing entries keep their stored name and position; any
    logical name with no existing entry is appended under that name. Every
    other entry is copied with its original ZipInfo.
    """
    directory = os.path.dirname(os.path.abspath(bacpac_path))
    temp_path = None
    try:
        fd, temp_path = tempfile.mkstemp(prefix=".bacpacfix_", suffix=".tmp", dir=directory)
        os.close(fd)

        # r+b fails fast on read-only or locked files before any work is done.
        with open(bacpac_path, "r+b") as source, zipfile.ZipFile(source, "r") as zin, \
                zipfile.ZipFile(temp_path, "w", compression=zipfile.ZIP_DEFLATED) as zout:
            items = zin.infolist()
            replaced_at: Dict[int, str] = {}
            for logical_name in texts:
                existing = find_entry(items, logical_name)
                if existing is not None:
                    replaced_at[items.index(existing)] = logical_name

            for idx, item in enumerate(items):
                logical_name = replaced_at.get(idx)
                if logical_name is None:
                    _copy_entry(zin, zout, item)
                    continue
                logger.debug(f"Replacing entry {item.filename}")
                zout.writestr(_replacement_info(item.filename, item), texts[logical_name].encode("utf-8"))

            for logical_name in texts:
                if logical_name not in replaced_at.values():
                    logger.warning(f"{logical_name} not found in package; adding it")
                    zout.writestr(_replacement_info(logical_name), texts[logical_name].encode("utf-8"))

            zout.comment = zin.comment

        shutil.copymode(bacpac_path, temp_path)
        os.replace(temp_path, bacpac_path)
        temp_path = None
    except zipfile.BadZipFile as exc:
        raise PackageWriteError(f"Failed to update package: invalid package (ZIP): {exc}", original_error=exc) from exc
    except OSError as exc:
        raise PackageWriteError(f"Failed to update package: {exc}", original_error=exc) from exc
    except Exception as exc:
        raise PackageWriteError(f"Failed to update package: {exc}", original_error=exc) from exc
    finally:
        if temp_path is not None and os.path.exists(temp_path):
            os.remove(temp_path)
