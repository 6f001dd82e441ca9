"""
Mail Gateway Service - eine Mail-Operation pro Request

Prinzip:
- Routes rufen diesen Service auf (dünn, nur HTTP-Handling)
- Jede Operation: Account laden → Passwort entschlüsseln → Session öffnen →
  genau eine Operation → Session schließen
- Kein Pool, keine Wiederverwendung, keine Retries
"""

import importlib
import logging
from dataclasses import dataclass
from typing import Any, Callable, List, Mapping

from imapclient.exceptions import IMAPClientError

from mailgate.helpers.database import get_mail_account
from mailgate.services.folder_resolver import PATH_DELIMITER, FolderNode, list_folders
from mailgate.services.imap_connection import (
    DEFAULT_AUTH_TIMEOUT,
    DEFAULT_CONNECT_TIMEOUT,
    ImapSettings,
    classify_operation_error,
    open_imap_session,
    probe_imap,
)
from mailgate.services.mail_errors import AccountNotConfiguredError, MailGatewayError
from mailgate.services.message_lister import MessageListing, list_messages
from mailgate.services.message_reader import MessageDetail, read_message
from mailgate.services.smtp_sender import OutgoingEmail, SMTPSender, SMTPSettings

logger = logging.getLogger(__name__)

_encryption = None


def _get_encryption():
    global _encryption
    if _encryption is None:
        _encryption = importlib.import_module(".08_encryption", "mailgate")
    return _encryption


@dataclass
class GatewayOptions:
    """Laufzeit-Optionen aus der App-Konfiguration"""

    connect_timeout: float = DEFAULT_CONNECT_TIMEOUT
    auth_timeout: float = DEFAULT_AUTH_TIMEOUT
    verify_tls: bool = False
    folder_delimiter: str = PATH_DELIMITER

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "GatewayOptions":
        return cls(
            connect_timeout=float(config.get("MAIL_CONNECT_TIMEOUT", DEFAULT_CONNECT_TIMEOUT)),
            auth_timeout=float(config.get("MAIL_AUTH_TIMEOUT", DEFAULT_AUTH_TIMEOUT)),
            verify_tls=bool(config.get("MAIL_TLS_VERIFY", False)),
            folder_delimiter=config.get("MAIL_FOLDER_DELIMITER") or PATH_DELIMITER,
        )

    def imap_settings(self, host, port, username, password, secure) -> ImapSettings:
        return ImapSettings(
            host=host,
            port=port,
            username=username,
            password=password,
            secure=secure,
            verify_tls=self.verify_tls,
            connect_timeout=self.connect_timeout,
            auth_timeout=self.auth_timeout,
        )


def probe_credentials(options: GatewayOptions, host, port, username, password, secure) -> None:
    """Live-Probe (Login + SELECT INBOX) ohne zu speichern"""
    probe_imap(options.imap_settings(host, port, username, password, secure))


class MailGatewayService:
    """
    Mail-Operationen für den Account eines Benutzers.

    Verwendung:
        with get_db_session() as db:
            gateway = MailGatewayService.for_user(db, user.id, vault, options)
        listing = gateway.list_messages("INBOX", limit=20, offset=0)
    """

    def __init__(self, account, vault, options: GatewayOptions = None):
        self.account = account
        self.vault = vault
        self.options = options or GatewayOptions()

    @classmethod
    def for_user(cls, db, user_id: int, vault, options: GatewayOptions = None) -> "MailGatewayService":
        """Raises AccountNotConfiguredError wenn der Benutzer keinen Account hat"""
        account = get_mail_account(db, user_id)
        if account is None:
            raise AccountNotConfiguredError()
        return cls(account, vault, options)

    def _password(self) -> str:
        # CorruptCredentialError geht als Konfigurationsfehler an die Route
        return self.vault.decrypt(self.account.encrypted_password)

    def imap_settings(self) -> ImapSettings:
        a = self.account
        return self.options.imap_settings(a.imap_host, a.imap_port, a.username, self._password(), a.imap_secure)

    def smtp_settings(self) -> SMTPSettings:
        a = self.account
        return SMTPSettings(
            host=a.smtp_host,
            port=a.smtp_port,
            username=a.username,
            password=self._password(),
            from_email=a.email,
            secure=a.smtp_secure,
            verify_tls=self.options.verify_tls,
            timeout=self.options.connect_timeout,
        )

    def _run(self, operation: Callable, *args):
        """Öffnet eine Session, führt operation(client, *args) aus, schließt sie wieder"""
        settings = self.imap_settings()
        with open_imap_session(settings) as client:
            try:
                return operation(client, *args)
            except MailGatewayError:
                raise
            except (IMAPClientError, OSError) as e:
                error = classify_operation_error(e)
                logger.warning(f"IMAP-Operation {operation.__name__} fehlgeschlagen: {type(e).__name__}: {e}")
                raise error from e

    def list_folders(self) -> List[FolderNode]:
        return list(self._run(list_folders, self.options.folder_delimiter))

    def list_messages(self, folder: str, limit: int, offset: int) -> MessageListing:
        return self._run(list_messages, folder, limit, offset)

    def read_message(self, folder: str, uid: int) -> MessageDetail:
        return self._run(read_message, folder, uid)

    def send(self, email: OutgoingEmail) -> str:
        email.validate()
        return SMTPSender(self.smtp_settings()).send(email)


def get_vault(secret: str):
    """CredentialVault für das konfigurierte Secret"""
    return _get_encryption().CredentialVault(secret)
