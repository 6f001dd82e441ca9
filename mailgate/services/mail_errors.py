"""
Mail Gateway - Fehler-Hierarchie

Alle Fehler des Mail-Gateways erben von MailGatewayError. Jeder Fehler kennt
seinen API-Code und den HTTP-Status, mit dem er an der Request-Grenze
ausgeliefert wird (siehe blueprints/mail.py).
"""


class MailGatewayError(Exception):
    """Basis für alle Mail-Gateway Fehler"""

    code = "MAIL_ERROR"
    status_code = 400

    def __init__(self, message: str, detail: str = None):
        super().__init__(message)
        self.message = message
        self.detail = detail

    def __str__(self):
        return self.message


class AccountNotConfiguredError(MailGatewayError):
    """Benutzer hat keinen Mail-Account hinterlegt"""

    code = "NO_ACCOUNT"

    def __init__(self, message: str = "No email account configured"):
        super().__init__(message)


class CorruptCredentialError(MailGatewayError):
    """Gespeichertes Passwort lässt sich nicht entschlüsseln"""

    code = "CORRUPT_CREDENTIAL"

    def __init__(self, message: str = "Stored account password is unreadable, please set up the account again"):
        super().__init__(message)


class ConnectionRefusedMailError(MailGatewayError):
    code = "CONNECTION_REFUSED"


class MailTimeoutError(MailGatewayError):
    code = "TIMEOUT"


class AuthenticationFailedError(MailGatewayError):
    code = "AUTH_FAILED"


class FolderNotFoundError(MailGatewayError):
    code = "FOLDER_NOT_FOUND"


class ProtocolError(MailGatewayError):
    """Generischer IMAP-Fehler, Originaltext wird durchgereicht"""

    code = "PROTOCOL_ERROR"


class MessageNotFoundError(MailGatewayError):
    code = "NOT_FOUND"
    status_code = 404

    def __init__(self, message: str = "Email not found"):
        super().__init__(message)


class ValidationError(MailGatewayError):
    code = "VALIDATION_ERROR"


class SendError(MailGatewayError):
    """SMTP-Versand fehlgeschlagen (kein Retry)"""

    code = "SEND_FAILED"
