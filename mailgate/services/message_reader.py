"""
Message Reader

Holt genau eine Nachricht per UID: Header, Text-Teil, Gesamtnachricht und
BODYSTRUCTURE in einem FETCH. body und html kommen beide aus demselben
TEXT-Teil, text ist die Variante ohne Tags.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from mailgate.services.imap_connection import select_folder
from mailgate.services.mail_errors import MessageNotFoundError
from mailgate.services.mime_parts import decode_bytes, first_header, flatten_struct, parse_header_block, strip_tags

logger = logging.getLogger(__name__)

DETAIL_FETCH_ITEMS = [b"BODY.PEEK[HEADER]", b"BODY.PEEK[TEXT]", b"BODY.PEEK[]", b"BODYSTRUCTURE"]

DEFAULT_ATTACHMENT_NAME = "attachment"


@dataclass
class AttachmentDescriptor:
    filename: str
    mime_type: str
    size: int

    def to_dict(self) -> Dict[str, Any]:
        return {"filename": self.filename, "mimeType": self.mime_type, "size": self.size}


@dataclass
class MessageDetail:
    id: int
    subject: str = ""
    sender: str = ""
    to: str = ""
    cc: List[str] = field(default_factory=list)
    bcc: List[str] = field(default_factory=list)
    date: str = ""
    body: str = ""
    html: str = ""
    text: str = ""
    attachments: List[AttachmentDescriptor] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "subject": self.subject,
            "from": self.sender,
            "to": self.to,
            "cc": list(self.cc),
            "bcc": list(self.bcc),
            "date": self.date,
            "body": self.body,
            "html": self.html,
            "text": self.text,
            "attachments": [a.to_dict() for a in self.attachments],
        }


def extract_attachments(bodystructure) -> List[AttachmentDescriptor]:
    """Anhänge = Teile mit Disposition 'attachment' (nur Metadaten)"""
    return [
        AttachmentDescriptor(
            filename=part.disposition_params.get("filename") or DEFAULT_ATTACHMENT_NAME,
            mime_type=part.mime_type,
            size=part.size,
        )
        for part in flatten_struct(bodystructure)
        if part.is_attachment
    ]


def _find_uid(client, uid: int) -> Optional[int]:
    hits = client.search(["UID", str(uid)])
    if not hits:
        return None
    return hits[0]


def read_message(client, folder: str, uid: int) -> MessageDetail:
    """Einzelne Nachricht lesen

    Raises:
        MessageNotFoundError: UID nicht im Ordner
    """
    select_folder(client, folder)

    found = _find_uid(client, uid)
    if found is None:
        logger.info(f"Mail UID {uid} nicht in {folder!r}")
        raise MessageNotFoundError()

    response = client.fetch([found], DETAIL_FETCH_ITEMS)
    data = response.get(found)
    if not data:
        logger.warning(f"FETCH für UID {found} in {folder!r} lieferte nichts")
        raise MessageNotFoundError()

    headers = parse_header_block(data.get(b"BODY[HEADER]"))
    text_part = decode_bytes(data.get(b"BODY[TEXT]"))

    return MessageDetail(
        id=found,
        subject=first_header(headers, "subject"),
        sender=first_header(headers, "from"),
        to=first_header(headers, "to"),
        cc=list(headers.get("cc", [])),
        bcc=list(headers.get("bcc", [])),
        date=first_header(headers, "date"),
        body=text_part,
        html=text_part,
        text=strip_tags(text_part),
        attachments=extract_attachments(data.get(b"BODYSTRUCTURE")),
    )
