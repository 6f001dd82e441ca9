"""
Message Lister

Liste der Nachrichten eines Ordners mit Paginierung.

Achtung, bewusst kompatibel gehalten:
- Es werden nur die ersten LISTING_FETCH_CAP UIDs der Suche geholt, DANN
  erst offset/limit angewendet. Ordner mit mehr als 50 Mails zeigen also nie
  mehr als diese 50, total ist die Größe dieses Ausschnitts.
- "seen" ist True, wenn das \\Seen Flag FEHLT (invertiert).
Beides steht als offene Frage in DESIGN.md.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List

from mailgate.services.imap_connection import select_folder
from mailgate.services.mime_parts import first_header, has_attachments, parse_header_block

logger = logging.getLogger(__name__)

LISTING_FETCH_CAP = 50

LISTING_FETCH_ITEMS = [b"BODY.PEEK[HEADER]", b"BODY.PEEK[TEXT]", b"FLAGS", b"BODYSTRUCTURE"]

SEEN_FLAG = b"\\Seen"


@dataclass
class MessageSummary:
    id: int
    subject: str = ""
    sender: str = ""
    to: str = ""
    date: str = ""
    seen: bool = False
    has_attachments: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "to": self.to,
            "date": self.date,
            "seen": self.seen,
            "hasAttachments": self.has_attachments,
        }


@dataclass
class MessageListing:
    messages: List[MessageSummary] = field(default_factory=list)
    total: int = 0


def _flag_set(flags) -> set:
    return {f if isinstance(f, bytes) else str(f).encode() for f in (flags or ())}


def summarize(uid: int, data: Dict[bytes, Any]) -> MessageSummary:
    """Projiziert eine FETCH-Antwort auf eine MessageSummary"""
    headers = parse_header_block(data.get(b"BODY[HEADER]"))

    return MessageSummary(
        id=uid,
        subject=first_header(headers, "subject"),
        sender=first_header(headers, "from"),
        to=first_header(headers, "to"),
        date=first_header(headers, "date"),
        seen=SEEN_FLAG not in _flag_set(data.get(b"FLAGS")),
        has_attachments=has_attachments(data.get(b"BODYSTRUCTURE")),
    )


def list_messages(client, folder: str, limit: int = 50, offset: int = 0) -> MessageListing:
    """Nachrichten eines Ordners

    1. SELECT  2. SEARCH ALL  3. leer → sofort zurück (kein FETCH)
    4. auf LISTING_FETCH_CAP kappen  5. FETCH  6. total = Anzahl geholt
    7. offset/limit schneiden, umdrehen  8. projizieren
    """
    select_folder(client, folder)

    uids = client.search(["ALL"])
    logger.info(f"📧 {len(uids)} Mails in {folder!r} gefunden")
    if not uids:
        return MessageListing(messages=[], total=0)

    capped = list(uids)[:LISTING_FETCH_CAP]
    response = client.fetch(capped, LISTING_FETCH_ITEMS)

    fetched = [(uid, response[uid]) for uid in capped if uid in response]
    total = len(fetched)

    page = fetched[offset : offset + limit]
    page.reverse()

    return MessageListing(
        messages=[summarize(uid, data) for uid, data in page],
        total=total,
    )
