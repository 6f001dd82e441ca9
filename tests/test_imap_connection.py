"""Unit Tests für IMAP Connection Manager

Tests für mailgate/services/imap_connection.py
"""

import errno
import socket
from unittest.mock import MagicMock, patch

import pytest
from imapclient.exceptions import IMAPClientError, LoginError

from mailgate.services.imap_connection import (
    ImapSettings,
    build_ssl_context,
    classify_connection_error,
    classify_operation_error,
    open_imap_session,
    probe_imap,
    release_session,
    select_folder,
)
from mailgate.services.mail_errors import (
    AuthenticationFailedError,
    ConnectionRefusedMailError,
    FolderNotFoundError,
    MailTimeoutError,
    ProtocolError,
)


@pytest.fixture
def settings():
    return ImapSettings(host="imap.example.com", port=993, username="user", password="pw")


class TestClassifyConnectionError:
    """Reihenfolge: refused → timeout → auth → generisch"""

    def test_refused_by_type(self):
        error = classify_connection_error(ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused"), "mx.test")
        assert isinstance(error, ConnectionRefusedMailError)
        assert error.message == "Connection refused. Check host (mx.test) and port."
        assert error.code == "CONNECTION_REFUSED"

    def test_refused_by_text(self):
        error = classify_connection_error(Exception("connect ECONNREFUSED 10.0.0.1:993"), "10.0.0.1")
        assert isinstance(error, ConnectionRefusedMailError)

    def test_timeout_by_type(self):
        error = classify_connection_error(socket.timeout("timed out"))
        assert isinstance(error, MailTimeoutError)
        assert error.message == "Timeout. The server is not responding."

    def test_timeout_by_text(self):
        assert isinstance(classify_connection_error(Exception("Timed out while authenticating with server")), MailTimeoutError)

    def test_auth_by_type(self):
        error = classify_connection_error(LoginError("b'[AUTHENTICATIONFAILED] Invalid credentials (Failure)'"))
        assert isinstance(error, AuthenticationFailedError)
        assert error.message == "Login failed. Check username and password."

    def test_auth_by_text(self):
        assert isinstance(classify_connection_error(IMAPClientError("Invalid credentials")), AuthenticationFailedError)

    def test_generic_keeps_original_text(self):
        error = classify_connection_error(IMAPClientError("Server said: BYE shutting down"))
        assert isinstance(error, ProtocolError)
        assert error.message == "IMAP connection failed: Server said: BYE shutting down"
        assert error.detail == "Server said: BYE shutting down"

    def test_operation_error_is_protocol_error(self):
        error = classify_operation_error(IMAPClientError("FETCH command error: BAD"))
        assert isinstance(error, ProtocolError)
        assert error.message == "FETCH command error: BAD"

    def test_operation_timeout(self):
        assert isinstance(classify_operation_error(socket.timeout("timed out")), MailTimeoutError)


class TestOpenImapSession:
    """Session wird auf jedem Pfad freigegeben"""

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_success_logs_out(self, mock_imap_cls, settings):
        mock_client = MagicMock()
        mock_imap_cls.return_value = mock_client

        with open_imap_session(settings) as client:
            assert client is mock_client

        mock_client.login.assert_called_once_with("user", "pw")
        mock_client.logout.assert_called_once()

        kwargs = mock_imap_cls.call_args.kwargs
        assert kwargs["host"] == "imap.example.com"
        assert kwargs["port"] == 993
        assert kwargs["ssl"] is True
        assert kwargs["timeout"].connect == 15.0
        assert kwargs["timeout"].read == 15.0

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_plain_connection_without_ssl_context(self, mock_imap_cls, settings):
        settings.secure = False
        with open_imap_session(settings):
            pass
        assert mock_imap_cls.call_args.kwargs["ssl"] is False
        assert mock_imap_cls.call_args.kwargs["ssl_context"] is None

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_login_failure_logs_out(self, mock_imap_cls, settings):
        mock_client = MagicMock()
        mock_client.login.side_effect = LoginError("[AUTHENTICATIONFAILED] Authentication failed.")
        mock_imap_cls.return_value = mock_client

        with pytest.raises(AuthenticationFailedError):
            with open_imap_session(settings):
                pytest.fail("Body darf nicht laufen")

        mock_client.logout.assert_called_once()

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_connect_refused(self, mock_imap_cls, settings):
        mock_imap_cls.side_effect = ConnectionRefusedError(errno.ECONNREFUSED, "Connection refused")

        with pytest.raises(ConnectionRefusedMailError) as exc_info:
            with open_imap_session(settings):
                pass

        assert "imap.example.com" in exc_info.value.message

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_connect_timeout(self, mock_imap_cls, settings):
        mock_imap_cls.side_effect = socket.timeout("timed out")

        with pytest.raises(MailTimeoutError):
            with open_imap_session(settings):
                pass

    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_operation_failure_still_logs_out(self, mock_imap_cls, settings):
        mock_client = MagicMock()
        mock_imap_cls.return_value = mock_client

        with pytest.raises(RuntimeError):
            with open_imap_session(settings):
                raise RuntimeError("boom")

        mock_client.logout.assert_called_once()

    def test_release_falls_back_to_shutdown(self):
        mock_client = MagicMock()
        mock_client.logout.side_effect = OSError("socket closed")

        release_session(mock_client)

        mock_client.shutdown.assert_called_once()

    def test_release_none(self):
        release_session(None)


class TestSelectFolder:
    def test_readonly(self):
        mock_client = MagicMock()
        select_folder(mock_client, "Archiv")
        mock_client.select_folder.assert_called_once_with("Archiv", readonly=True)

    def test_missing_folder(self):
        mock_client = MagicMock()
        mock_client.select_folder.side_effect = IMAPClientError("select failed: Mailbox doesn't exist: Nope")

        with pytest.raises(FolderNotFoundError) as exc_info:
            select_folder(mock_client, "Nope")
        assert exc_info.value.code == "FOLDER_NOT_FOUND"

    def test_other_select_error(self):
        mock_client = MagicMock()
        mock_client.select_folder.side_effect = IMAPClientError("select failed: [SERVERBUG] oops")

        with pytest.raises(ProtocolError):
            select_folder(mock_client, "INBOX")


class TestProbeImap:
    @patch("mailgate.services.imap_connection.IMAPClient")
    def test_probe_selects_inbox(self, mock_imap_cls, settings):
        mock_client = MagicMock()
        mock_imap_cls.return_value = mock_client

        probe_imap(settings)

        mock_client.select_folder.assert_called_once_with("INBOX", readonly=True)
        mock_client.logout.assert_called_once()


def test_ssl_context_accept_all_by_default():
    import ssl

    assert build_ssl_context(False).verify_mode == ssl.CERT_NONE
    assert build_ssl_context(True).verify_mode == ssl.CERT_REQUIRED


def test_settings_repr_hides_password():
    settings = ImapSettings(host="h", port=993, username="u", password="very-secret-pw")
    assert "very-secret-pw" not in repr(settings)
