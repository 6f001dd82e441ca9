"""
MIME-Hilfsfunktionen für Lister und Reader

- Header-Block → {name: [werte, ...]} (Namen lowercase, RFC 2047 dekodiert)
- BODYSTRUCTURE → flache Teile-Liste (Root + erste Ebene) mit Disposition
- HTML-Tags entfernen (best effort)

Keine vollständige MIME-Baum-Auswertung: verschachtelte Multiparts unterhalb
der ersten Ebene werden nicht betrachtet.
"""

import logging
import re
from dataclasses import dataclass, field
from email.header import decode_header, make_header
from email.parser import BytesHeaderParser
from typing import Dict, List, Optional

logger = logging.getLogger(__name__)

_TAG_RE = re.compile(r"<[^>]*>")
_FOLD_RE = re.compile(r"\r?\n[ \t]+")


def strip_tags(html: Optional[str]) -> str:
    """Entfernt alle <...> Sequenzen"""
    if not html:
        return ""
    return _TAG_RE.sub("", html)


def decode_bytes(value) -> str:
    if value is None:
        return ""
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def _decode_header_value(value: str) -> str:
    """Unfolding + MIME encoded-words (=?UTF-8?Q?...?=) dekodieren"""
    unfolded = _FOLD_RE.sub(" ", value).strip()
    try:
        return str(make_header(decode_header(unfolded)))
    except (LookupError, UnicodeDecodeError, ValueError) as e:
        logger.debug(f"Header nicht dekodierbar, Rohwert wird genutzt: {e}")
        return unfolded


def parse_header_block(raw) -> Dict[str, List[str]]:
    """Zerlegt einen Header-Block in {lowercase-name: [werte...]}

    Mehrfach vorkommende Header behalten alle Werte in Reihenfolge.
    """
    headers: Dict[str, List[str]] = {}
    if not raw:
        return headers
    if isinstance(raw, str):
        raw = raw.encode("utf-8", errors="replace")

    message = BytesHeaderParser().parsebytes(raw)
    for name, value in message.items():
        headers.setdefault(name.lower(), []).append(_decode_header_value(str(value)))
    return headers


def first_header(headers: Dict[str, List[str]], name: str) -> str:
    """Erster Wert eines Headers oder ''"""
    values = headers.get(name)
    return values[0] if values else ""


@dataclass
class StructPart:
    """Ein Teil aus BODYSTRUCTURE (flach)"""

    mime_type: str
    size: int = 0
    disposition: Optional[str] = None
    disposition_params: Dict[str, str] = field(default_factory=dict)

    @property
    def is_attachment(self) -> bool:
        return self.disposition == "attachment"


def _pairs(params) -> Dict[str, str]:
    """(b'name', b'x.pdf', b'charset', b'utf-8') → {"name": "x.pdf", ...}"""
    result: Dict[str, str] = {}
    if not params or not isinstance(params, (list, tuple)):
        return result
    items = list(params)
    for i in range(0, len(items) - 1, 2):
        key = decode_bytes(items[i]).lower()
        result[key] = decode_bytes(items[i + 1])
    return result


def _disposition_index(part) -> int:
    """Position des Disposition-Felds (RFC 3501 body-ext-1part / body-ext-mpart)"""
    if isinstance(part[0], list):
        return 3
    mime_type = decode_bytes(part[0]).lower()
    subtype = decode_bytes(part[1]).lower() if len(part) > 1 else ""
    if mime_type == "text":
        return 9
    if mime_type == "message" and subtype == "rfc822":
        return 11
    return 8


def _to_struct_part(part) -> Optional[StructPart]:
    if not isinstance(part, (list, tuple)) or not part:
        return None

    if isinstance(part[0], list):
        subtype = decode_bytes(part[1]).lower() if len(part) > 1 else "mixed"
        mime_type = f"multipart/{subtype}"
        size = 0
    else:
        mime_type = f"{decode_bytes(part[0])}/{decode_bytes(part[1]) if len(part) > 1 else ''}".lower()
        try:
            size = int(part[6]) if len(part) > 6 and part[6] is not None else 0
        except (TypeError, ValueError):
            size = 0

    struct_part = StructPart(mime_type=mime_type, size=size)

    index = _disposition_index(part)
    disposition = part[index] if len(part) > index else None
    if isinstance(disposition, (list, tuple)) and disposition and isinstance(disposition[0], (bytes, str)):
        struct_part.disposition = decode_bytes(disposition[0]).lower()
        struct_part.disposition_params = _pairs(disposition[1] if len(disposition) > 1 else None)

    return struct_part


def flatten_struct(bodystructure) -> List[StructPart]:
    """Root-Teil plus direkte Kinder eines Multiparts"""
    parts: List[StructPart] = []
    root = _to_struct_part(bodystructure)
    if root is None:
        return parts
    parts.append(root)

    if isinstance(bodystructure[0], list):
        for child in bodystructure[0]:
            child_part = _to_struct_part(child)
            if child_part is not None:
                parts.append(child_part)
    return parts


def has_attachments(bodystructure) -> bool:
    return any(part.is_attachment for part in flatten_struct(bodystructure))
