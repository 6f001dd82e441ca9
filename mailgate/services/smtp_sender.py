"""
SMTP Sender - Ausgehender Mail-Versand

Eine Mail pro Aufruf, eine SMTP-Session pro Mail. Kein Retry: ein Fehler des
Transports geht mit dessen Fehlertext an den Aufrufer.

Verschlüsselung:
    secure=True   → SMTP_SSL (Port 465)
    secure=False  → SMTP, STARTTLS falls der Server es anbietet
Zertifikate werden nur bei verify_tls=True geprüft.
"""

import logging
import smtplib
import socket
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr, formatdate, getaddresses, make_msgid
from typing import List, Optional

from mailgate.services.imap_connection import DEFAULT_CONNECT_TIMEOUT, build_ssl_context
from mailgate.services.mail_errors import SendError, ValidationError
from mailgate.services.mime_parts import strip_tags

logger = logging.getLogger(__name__)

MISSING_FIELDS_MESSAGE = "Recipient, subject and body are required"


def format_address_header(value: str) -> str:
    """To/Cc-Header: jede Adresse einzeln per formataddr, damit nur der Anzeigename kodiert wird"""
    return ", ".join(formataddr((name, addr)) for name, addr in getaddresses([value]) if addr)


@dataclass
class SMTPSettings:
    host: str
    port: int
    username: str
    password: str
    from_email: str
    secure: bool = True
    verify_tls: bool = False
    timeout: float = DEFAULT_CONNECT_TIMEOUT

    def __repr__(self):
        return f"SMTPSettings(host={self.host!r}, port={self.port}, username={self.username!r}, secure={self.secure})"


@dataclass
class OutgoingEmail:
    """Ausgehende Mail (Adressfelder als kommagetrennte Strings)"""

    to: str
    subject: str
    body: str = ""
    html: Optional[str] = None
    cc: Optional[str] = None
    bcc: Optional[str] = None

    @classmethod
    def from_payload(cls, payload: dict) -> "OutgoingEmail":
        payload = payload or {}

        def text(key):
            value = payload.get(key)
            return value.strip() if isinstance(value, str) else None

        return cls(
            to=text("to") or "",
            subject=text("subject") or "",
            body=payload.get("body") if isinstance(payload.get("body"), str) else "",
            html=payload.get("html") if isinstance(payload.get("html"), str) else None,
            cc=text("cc"),
            bcc=text("bcc"),
        )

    def validate(self) -> None:
        """Pflichtfelder prüfen, bevor irgendeine Verbindung aufgebaut wird"""
        if not self.to or not self.subject or not (self.body or self.html):
            raise ValidationError(MISSING_FIELDS_MESSAGE)

    def recipients(self) -> List[str]:
        """Envelope-Empfänger: To + Cc + Bcc"""
        fields = [value for value in (self.to, self.cc, self.bcc) if value]
        return [addr for _, addr in getaddresses(fields) if addr]


class SMTPSender:
    """
    Versendet eine Mail über die SMTP-Daten des Accounts.

    Verwendung:
        sender = SMTPSender(settings)
        sender.send(OutgoingEmail(to="a@example.com", subject="Hi", body="Hallo"))
    """

    def __init__(self, settings: SMTPSettings):
        self.settings = settings

    def _open(self) -> smtplib.SMTP:
        s = self.settings
        context = build_ssl_context(s.verify_tls)
        logger.info(f"SMTP connect {s.host}:{s.port} (ssl={s.secure})")

        if s.secure:
            smtp = smtplib.SMTP_SSL(s.host, s.port, context=context, timeout=s.timeout)
        else:
            smtp = smtplib.SMTP(s.host, s.port, timeout=s.timeout)

        try:
            if not s.secure:
                smtp.ehlo()
                if smtp.has_extn("starttls"):
                    smtp.starttls(context=context)
                    smtp.ehlo()
            smtp.login(s.username, s.password)
        except (smtplib.SMTPException, OSError):
            smtp.close()
            raise
        return smtp

    def build_message(self, email: OutgoingEmail) -> MIMEMultipart:
        """multipart/alternative mit Text- und HTML-Teil"""
        msg = MIMEMultipart("alternative")
        msg["From"] = self.settings.from_email
        msg["To"] = format_address_header(email.to)
        if email.cc:
            msg["Cc"] = format_address_header(email.cc)
        msg["Subject"] = email.subject
        msg["Date"] = formatdate(localtime=True)

        domain = self.settings.from_email.rpartition("@")[2] or None
        msg["Message-ID"] = make_msgid(domain=domain)

        text_body = email.body or strip_tags(email.html)
        html_body = email.html or strip_tags(email.body)
        msg.attach(MIMEText(text_body, "plain", "utf-8"))
        msg.attach(MIMEText(html_body, "html", "utf-8"))
        return msg

    def send(self, email: OutgoingEmail) -> str:
        """Versendet die Mail

        Returns:
            Message-ID der versendeten Mail

        Raises:
            ValidationError: Pflichtfelder fehlen (vor jeder Verbindung)
            SendError: Transportfehler, Originaltext als Meldung
        """
        email.validate()
        msg = self.build_message(email)

        try:
            smtp = self._open()
            try:
                smtp.sendmail(self.settings.from_email, email.recipients(), msg.as_string())
            finally:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.debug(f"SMTP quit fehlgeschlagen: {e}")
        except (smtplib.SMTPException, socket.timeout, OSError, UnicodeEncodeError) as e:
            logger.error(f"❌ SMTP-Versand über {self.settings.host} fehlgeschlagen: {type(e).__name__}: {e}")
            raise SendError(str(e) or type(e).__name__, detail=type(e).__name__) from e

        logger.info(f"✅ Mail versendet an {len(email.recipients())} Empfänger")
        return msg["Message-ID"]
