"""
IMAP Connection Manager

Öffnet pro Operation genau eine kurzlebige, authentifizierte IMAP-Session
und räumt sie auf jedem Pfad wieder ab (Erfolg, Timeout, Auth-Fehler,
Ordner-Fehler).

Ablauf:
    Connecting → Authenticating → (FolderOpening) → Operating → Closing

Usage:
    with open_imap_session(settings) as client:
        select_folder(client, "INBOX")
        ...
"""

import errno
import logging
import socket
import ssl
from contextlib import contextmanager
from dataclasses import dataclass

from imapclient import IMAPClient
from imapclient.exceptions import IMAPClientError, LoginError
from imapclient.imapclient import SocketTimeout

from mailgate.services.mail_errors import (
    AuthenticationFailedError,
    ConnectionRefusedMailError,
    FolderNotFoundError,
    MailGatewayError,
    MailTimeoutError,
    ProtocolError,
)

logger = logging.getLogger(__name__)

DEFAULT_CONNECT_TIMEOUT = 15.0
DEFAULT_AUTH_TIMEOUT = 15.0

REFUSED_MESSAGE = "Connection refused. Check host ({host}) and port."
TIMEOUT_MESSAGE = "Timeout. The server is not responding."
AUTH_MESSAGE = "Login failed. Check username and password."
GENERIC_MESSAGE = "IMAP connection failed: {detail}"

_REFUSED_MARKERS = ("econnrefused", "connection refused")
_TIMEOUT_MARKERS = ("etimedout", "timed out", "timeout")
_AUTH_MARKERS = ("authenticationfailed", "invalid credentials", "authentication")
_MISSING_FOLDER_MARKERS = (
    "nonexistent",
    "doesn't exist",
    "does not exist",
    "no such mailbox",
    "unknown mailbox",
    "not found",
)


@dataclass
class ImapSettings:
    """Verbindungsdaten für eine IMAP-Session"""

    host: str
    port: int
    username: str
    password: str
    secure: bool = True
    verify_tls: bool = False
    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    auth_timeout: float = DEFAULT_AUTH_TIMEOUT

    def __repr__(self):
        # Passwort nie in Logs/Tracebacks
        return (
            f"ImapSettings(host={self.host!r}, port={self.port}, "
            f"username={self.username!r}, secure={self.secure})"
        )


def build_ssl_context(verify_tls: bool) -> ssl.SSLContext:
    """SSL-Kontext für IMAP/SMTP

    verify_tls=False akzeptiert jedes Zertifikat (bestehendes Verhalten),
    verify_tls=True prüft Kette und Hostname.
    """
    context = ssl.create_default_context()
    if not verify_tls:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def classify_connection_error(exc: BaseException, host: str = "") -> MailGatewayError:
    """Ordnet einen Verbindungs-/Login-Fehler einer der Fehlerklassen zu

    Reihenfolge: refused → timeout → auth → generisch (mit Originaltext).
    """
    if isinstance(exc, MailGatewayError):
        return exc

    detail = str(exc) or type(exc).__name__
    text = f"{type(exc).__name__}: {detail}".lower()

    if (
        isinstance(exc, ConnectionRefusedError)
        or getattr(exc, "errno", None) == errno.ECONNREFUSED
        or any(marker in text for marker in _REFUSED_MARKERS)
    ):
        return ConnectionRefusedMailError(REFUSED_MESSAGE.format(host=host or "?"), detail=detail)

    if isinstance(exc, (socket.timeout, TimeoutError)) or any(
        marker in text for marker in _TIMEOUT_MARKERS
    ):
        return MailTimeoutError(TIMEOUT_MESSAGE, detail=detail)

    if isinstance(exc, LoginError) or any(marker in text for marker in _AUTH_MARKERS):
        return AuthenticationFailedError(AUTH_MESSAGE, detail=detail)

    return ProtocolError(GENERIC_MESSAGE.format(detail=detail), detail=detail)


def classify_operation_error(exc: BaseException) -> MailGatewayError:
    """Fehler während SELECT/SEARCH/FETCH: Timeout oder Protokollfehler (Originaltext)"""
    if isinstance(exc, MailGatewayError):
        return exc
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return MailTimeoutError(TIMEOUT_MESSAGE, detail=str(exc))
    detail = str(exc) or type(exc).__name__
    return ProtocolError(detail, detail=detail)


def release_session(client) -> None:
    """Schließt die Session, Fehler beim Logout werden nur geloggt"""
    if client is None:
        return
    try:
        client.logout()
    except Exception as e:
        logger.debug(f"IMAP logout fehlgeschlagen, schließe Socket: {type(e).__name__}: {e}")
        try:
            client.shutdown()
        except Exception as e2:
            logger.debug(f"IMAP shutdown fehlgeschlagen: {type(e2).__name__}: {e2}")


@contextmanager
def open_imap_session(settings: ImapSettings):
    """Kurzlebige IMAP-Session für genau eine Operation

    Connect und Login sind durch connect_timeout bzw. auth_timeout begrenzt.
    Verbindungsfehler werden klassifiziert (classify_connection_error).
    Die Session wird auf jedem Pfad freigegeben.

    Yields:
        Eingeloggter IMAPClient
    """
    client = None
    try:
        try:
            logger.info(
                f"IMAP connect {settings.host}:{settings.port} (tls={settings.secure})"
            )
            client = IMAPClient(
                host=settings.host,
                port=settings.port,
                ssl=settings.secure,
                ssl_context=build_ssl_context(settings.verify_tls) if settings.secure else None,
                timeout=SocketTimeout(
                    connect=settings.connect_timeout, read=settings.auth_timeout
                ),
            )
            client.login(settings.username, settings.password)
        except Exception as e:
            classified = classify_connection_error(e, host=settings.host)
            logger.warning(
                f"IMAP-Verbindung zu {settings.host}:{settings.port} fehlgeschlagen "
                f"[{classified.code}]: {type(e).__name__}: {e}"
            )
            raise classified from e

        yield client
    finally:
        release_session(client)


def select_folder(client, folder: str = "INBOX"):
    """Öffnet einen Ordner read-only

    Raises:
        FolderNotFoundError: Ordner existiert nicht
        ProtocolError: sonstiger Fehler beim SELECT
    """
    try:
        return client.select_folder(folder, readonly=True)
    except (IMAPClientError, OSError) as e:
        text = str(e).lower()
        if any(marker in text for marker in _MISSING_FOLDER_MARKERS):
            logger.warning(f"Ordner nicht gefunden: {folder!r} ({e})")
            raise FolderNotFoundError(f"Folder not found: {folder}", detail=str(e)) from e
        if isinstance(e, OSError):
            raise classify_connection_error(e) from e
        raise ProtocolError(str(e) or f"Cannot open folder {folder}", detail=str(e)) from e


def probe_imap(settings: ImapSettings, folder: str = "INBOX") -> None:
    """Prüft Zugangsdaten: Login + SELECT INBOX, nichts wird gespeichert"""
    with open_imap_session(settings) as client:
        select_folder(client, folder)
    logger.info(f"IMAP-Probe für {settings.host} erfolgreich")
