"""Unit Tests für MailGatewayService

Tests für mailgate/services/mail_gateway.py
"""

import socket
from unittest.mock import MagicMock, Mock, patch

import pytest
from imapclient.exceptions import IMAPClientError

from mailgate.services.mail_errors import (
    AccountNotConfiguredError,
    CorruptCredentialError,
    MailTimeoutError,
    ProtocolError,
    ValidationError,
)
from mailgate.services.mail_gateway import GatewayOptions, MailGatewayService, get_vault
from mailgate.services.smtp_sender import OutgoingEmail


@pytest.fixture
def vault():
    return get_vault("gateway-test-secret")


@pytest.fixture
def account(vault):
    return Mock(
        email="alice@example.com",
        imap_host="imap.example.com",
        imap_port=993,
        imap_secure=True,
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_secure=False,
        username="alice",
        encrypted_password=vault.encrypt("imap-secret"),
    )


@pytest.fixture
def gateway(account, vault):
    return MailGatewayService(account, vault, GatewayOptions(connect_timeout=5, auth_timeout=7))


class TestGatewayOptions:
    def test_from_config(self):
        options = GatewayOptions.from_config(
            {"MAIL_CONNECT_TIMEOUT": "3", "MAIL_AUTH_TIMEOUT": 4, "MAIL_TLS_VERIFY": True, "MAIL_FOLDER_DELIMITER": "."}
        )
        assert options.connect_timeout == 3.0
        assert options.auth_timeout == 4.0
        assert options.verify_tls is True
        assert options.folder_delimiter == "."

    def test_defaults(self):
        options = GatewayOptions.from_config({})
        assert options.connect_timeout == 15.0
        assert options.auth_timeout == 15.0
        assert options.verify_tls is False
        assert options.folder_delimiter == "/"


class TestSettings:
    def test_imap_settings_decrypt_password(self, gateway):
        settings = gateway.imap_settings()
        assert settings.password == "imap-secret"
        assert settings.host == "imap.example.com"
        assert settings.connect_timeout == 5
        assert settings.auth_timeout == 7

    def test_smtp_settings(self, gateway):
        settings = gateway.smtp_settings()
        assert settings.from_email == "alice@example.com"
        assert settings.port == 587
        assert settings.secure is False
        assert settings.password == "imap-secret"

    def test_corrupt_password(self, gateway, account):
        account.encrypted_password = "kaputt"
        with pytest.raises(CorruptCredentialError):
            gateway.imap_settings()


class TestOperations:
    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_list_folders(self, mock_imap_cls, gateway):
        mock_client = MagicMock()
        mock_client.list_folders.return_value = [((), b"/", "INBOX"), ((), b"/", "INBOX/Alt")]
        mock_imap_cls.return_value = mock_client

        assert [f.path for f in gateway.list_folders()] == ["INBOX", "INBOX/Alt"]
        mock_client.logout.assert_called_once()

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_search_error_is_protocol_error(self, mock_imap_cls, gateway):
        mock_client = MagicMock()
        mock_client.search.side_effect = IMAPClientError("SEARCH command error: BAD [b'Invalid']")
        mock_imap_cls.return_value = mock_client

        with pytest.raises(ProtocolError) as exc_info:
            gateway.list_messages("INBOX", 10, 0)

        assert exc_info.value.message == "SEARCH command error: BAD [b'Invalid']"
        mock_client.logout.assert_called_once()

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_fetch_timeout(self, mock_imap_cls, gateway):
        mock_client = MagicMock()
        mock_client.search.return_value = [1]
        mock_client.fetch.side_effect = socket.timeout("timed out")
        mock_imap_cls.return_value = mock_client

        with pytest.raises(MailTimeoutError):
            gateway.read_message("INBOX", 1)

        mock_client.logout.assert_called_once()

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_one_session_per_operation(self, mock_imap_cls, gateway):
        mock_client = MagicMock()
        mock_client.search.return_value = []
        mock_imap_cls.return_value = mock_client

        gateway.list_messages("INBOX", 10, 0)
        gateway.list_messages("INBOX", 10, 0)

        assert mock_imap_cls.call_count == 2
        assert mock_client.logout.call_count == 2

    @patch("mailgate.services.mail_gateway.SMTPSender")
    def test_send_validates_first(self, mock_sender_cls, gateway):
        with pytest.raises(ValidationError):
            gateway.send(OutgoingEmail(to="", subject="x", body="y"))
        mock_sender_cls.assert_not_called()


class TestForUser:
    def test_no_account(self):
        db = MagicMock()
        db.query.return_value.filter_by.return_value.first.return_value = None

        with pytest.raises(AccountNotConfiguredError) as exc_info:
            MailGatewayService.for_user(db, 1, Mock())

        assert exc_info.value.message == "No email account configured"
        assert exc_info.value.code == "NO_ACCOUNT"
