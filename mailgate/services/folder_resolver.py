"""
Folder Directory Resolver

IMAP LIST liefert eine flache Liste (flags, delimiter, name). Daraus wird
eine verschachtelte Map {segment: {..., "children": {...}}} gebaut und
anschließend depth-first (pre-order) zu einer flachen FolderNode-Liste mit
vollem Pfad pro Ordner abgeflacht. Die UI rekonstruiert die Hierarchie aus
den Pfad-Segmenten.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

logger = logging.getLogger(__name__)

PATH_DELIMITER = "/"


@dataclass
class FolderNode:
    name: str
    path: str
    mailbox: str = ""
    children: List["FolderNode"] = field(default_factory=list)

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "path": self.path, "mailbox": self.mailbox or self.path}


def _to_text(value) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, bytes):
        return value.decode("utf-8", errors="replace")
    return str(value)


def build_folder_tree(mailboxes) -> Dict[str, dict]:
    """Baut aus IMAPClient.list_folders() die verschachtelte Ordner-Map

    Zwischenebenen, die der Server nicht selbst listet, werden ergänzt.

    Args:
        mailboxes: [(flags, delimiter, name), ...]

    Returns:
        {"INBOX": {"delimiter": "/", "flags": [...], "mailbox": "INBOX", "children": {...}}}
    """
    tree: Dict[str, dict] = {}

    for entry in mailboxes or []:
        try:
            flags, delimiter, name = entry
        except (TypeError, ValueError):
            logger.debug(f"Ungültiger LIST-Eintrag ignoriert: {entry!r}")
            continue

        name = _to_text(name)
        if not name:
            continue
        delimiter = _to_text(delimiter)
        segments = name.split(delimiter) if delimiter else [name]

        level = tree
        for depth, segment in enumerate(segments):
            mailbox = delimiter.join(segments[: depth + 1]) if delimiter else name
            node = level.setdefault(
                segment,
                {"delimiter": delimiter, "flags": [], "mailbox": mailbox, "children": {}},
            )
            if depth == len(segments) - 1:
                node["flags"] = [_to_text(f) for f in (flags or ())]
            level = node["children"]

    return tree


def _walk(tree, parent_path: str, delimiter: str, out: List[FolderNode]) -> List[FolderNode]:
    """Hängt die Knoten in pre-order an out an, gibt die direkten Kinder zurück"""
    level: List[FolderNode] = []
    if not isinstance(tree, dict):
        return level

    for name, value in tree.items():
        path = f"{parent_path}{delimiter}{name}" if parent_path else str(name)
        node = FolderNode(name=str(name), path=path, mailbox=path)
        children_map = None
        if isinstance(value, dict):
            node.mailbox = value.get("mailbox") or path
            children_map = value.get("children")

        out.append(node)
        level.append(node)
        node.children = _walk(children_map, path, delimiter, out)

    return level


def flatten_folders(tree, parent_path: str = "", delimiter: str = PATH_DELIMITER) -> List[FolderNode]:
    """Depth-first Walk über die Ordner-Map, Ergebnis in pre-order

    A -> {B -> {C}} ergibt [A ("A"), B ("A/B"), C ("A/B/C")].
    Kaputte oder fehlende Maps ergeben eine leere Liste.
    """
    result: List[FolderNode] = []
    _walk(tree, parent_path, delimiter, result)
    return result


def list_folders(client, delimiter: str = PATH_DELIMITER) -> Sequence[FolderNode]:
    """LIST auf der offenen Session, Ergebnis flach mit Pfaden"""
    mailboxes = client.list_folders()
    folders = flatten_folders(build_folder_tree(mailboxes), delimiter=delimiter)
    logger.info(f"📂 {len(folders)} Ordner aufgelöst")
    return folders
