from __future__ import annotations

from lxml import etree

from .errors import XmlParseError

XML_DECLARATION = '<?xml version="1.0" encoding="utf-8"?>'


def safe_fromstring(text: str, part_name: str = "XML"):
    """Parse already-decoded XML text without entity resolution.

    Blank text and CDATA sections are kept so untouched regions serialize as
    they were read. The parser encoding is pinned to UTF-8 because the
    declaration in ``text`` may still name the encoding the bytes had before
    decoding.
    """
    parser = etree.XMLParser(
        resolve_entities=False, remove_blank_text=False, strip_cdata=False, encoding="utf-8"
    )
    try:
        return etree.fromstring(text.encode("utf-8"), parser)
    except etree.XMLSyntaxError as exc:
        raise XmlParseError(
            f"Failed to parse {part_name}: {exc}",
            technical_details=str(exc),
            original_error=exc,
        ) from exc


def serialize_xml(root) -> str:
    """Serialize the document owning ``root`` with a fixed UTF-8 declaration, LF newlines, no indentation."""
    body = etree.tostring(root.getroottree(), encoding="unicode")
    return (XML_DECLARATION + body).replace("\r\n", "\n")
