"""
origin.xml checksum handling.

origin.xml lists a SHA-256 per package part; after model.xml is rewritten
its record has to be recomputed or the import tooling rejects the package.
"""

from __future__ import annotations

import hashlib
import logging
from typing import Optional, Tuple

from .xml_io import safe_fromstring, serialize_xml

logger = logging.getLogger(__name__)

MODEL_CHECKSUM_URI = "/model.xml"


def compute_model_hash(text: str) -> str:
    """SHA-256 over the UTF-8 bytes (no BOM, LF newlines) of ``text``, upper-case hex."""
    normalized = text.replace("\r\n", "\n")
    return hashlib.sha256(normalized.encode("utf-8")).hexdigest().upper()


def _checksum_tag(root) -> str:
    namespace = root.nsmap.get(None)
    return f"{{{namespace}}}Checksum" if namespace else "Checksum"


def _find_model_checksum(root):
    for node in root.iter(_checksum_tag(root)):
        if node.get("Uri") == MODEL_CHECKSUM_URI:
            return node
    return None


def read_model_checksum(origin_text: str) -> Optional[str]:
    """Return the stored model.xml checksum, or None when origin.xml has no such record."""
    root = safe_fromstring(origin_text, "origin.xml")
    node = _find_model_checksum(root)
    if node is None:
        return None
    return "".join(node.itertext()).strip()


def update_origin_xml_text(origin_text: str, model_hash: str) -> str:
    root = safe_fromstring(origin_text, "origin.xml")
    node = _find_model_checksum(root)
    if node is None:
        logger.info(f"origin.xml has no {MODEL_CHECKSUM_URI} checksum record; leaving it unchanged")
    else:
        for child in list(node):
            node.remove(child)
        node.text = model_hash.upper()
    return serialize_xml(root)


def reseal(model_text: str, origin_text: str) -> Tuple[str, str]:
    """Hash the cleaned model text and write it into origin.xml.

    Returns ``(model_hash, origin_text)``.
    """
    model_hash = compute_model_hash(model_text)
    return model_hash, update_origin_xml_text(origin_text, model_hash)
