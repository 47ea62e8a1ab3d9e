from __future__ import annotations

import logging
from typing import Iterable, List, Tuple

from lxml import etree

from .errors import XmlParseError
from .xml_io import safe_fromstring, serialize_xml

logger = logging.getLogger(__name__)

TARGET_MARKERS = ("AlwaysOn", "XTP")

_FOLDED_MARKERS = tuple(marker.casefold() for marker in TARGET_MARKERS)


def contains_marker(value: str) -> bool:
    if not value:
        return False
    folded = value.casefold()
    return any(marker in folded for marker in _FOLDED_MARKERS)


def _declared_namespaces(element) -> Iterable[str]:
    """Namespace URIs declared on ``element`` itself rather than inherited."""
    parent = element.getparent()
    inherited = parent.nsmap if parent is not None else {}
    for prefix, uri in element.nsmap.items():
        if inherited.get(prefix) != uri:
            yield uri


def is_removal_candidate(element) -> bool:
    """True when the local tag name or any attribute value mentions a target marker.

    Attribute names are not inspected: ``IsXtpEnabled="True"`` alone does not
    flag its element. Namespace declarations are attributes in the XML
    infoset, so a declared URI counts as an attribute value.
    """
    if contains_marker(etree.QName(element).localname):
        return True
    if any(contains_marker(value) for value in element.attrib.values()):
        return True
    return any(contains_marker(uri) for uri in _declared_namespaces(element))


def collect_removal_candidates(root) -> List:
    return [node for node in root.iter(etree.Element) if is_removal_candidate(node)]


def _detach(element) -> None:
    parent = element.getparent()
    if parent is None:
        return
    # lxml stores the following text as the element's tail; keep it in place.
    tail = element.tail
    if tail:
        previous = element.getprevious()
        if previous is not None:
            previous.tail = (previous.tail or "") + tail
        else:
            parent.text = (parent.text or "") + tail
    parent.remove(element)


def clean_model_xml_text(xml_text: str) -> Tuple[str, bool]:
    """Remove AlwaysOn/XTP elements from model.xml text.

    Returns the re-serialized document (always, so callers get normalized
    output even when nothing matched) and whether anything was removed.
    """
    root = safe_fromstring(xml_text, "model.xml")

    to_remove = collect_removal_candidates(root)
    if not to_remove:
        return serialize_xml(root), False

    if to_remove[0] is root:
        raise XmlParseError(
            f"Root element <{etree.QName(root).localname}> of model.xml references AlwaysOn/XTP",
            technical_details="removing the document root would leave no document",
        )

    # Descendants of an already detached candidate stay inside that subtree.
    for node in to_remove:
        _detach(node)

    logger.debug(f"Removed {len(to_remove)} AlwaysOn/XTP element(s) from model.xml")
    return serialize_xml(root), True
