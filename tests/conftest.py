# tests/conftest.py
"""Pytest Configuration & Shared Fixtures.

Flask-App mit In-Memory SQLite, eingeloggter Test-Client und fertige
IMAP-Antworten (BODYSTRUCTURE, Header-Blöcke). Kein Test öffnet eine echte
Netzwerkverbindung: IMAPClient und smtplib werden gepatcht.
"""

import importlib

import pytest

# ===== IMAP FIXTURE DATA =====

TEXT_PART = (b"text", b"plain", (b"charset", b"utf-8"), None, None, b"7bit", 120, 4, None, None, None, None)

HTML_PART = (b"text", b"html", (b"charset", b"utf-8"), None, None, b"quoted-printable", 340, 9, None, None, None, None)

PDF_PART = (
    b"application",
    b"pdf",
    (b"name", b"report.pdf"),
    None,
    None,
    b"base64",
    2048,
    None,
    (b"attachment", (b"filename", b"report.pdf")),
    None,
    None,
)

UNNAMED_PART = (
    b"image",
    b"png",
    None,
    None,
    None,
    b"base64",
    512,
    None,
    (b"attachment", None),
    None,
    None,
)

INLINE_PART = (
    b"image",
    b"jpeg",
    None,
    b"<logo>",
    None,
    b"base64",
    64,
    None,
    (b"inline", (b"filename", b"logo.jpg")),
    None,
    None,
)

MIXED_WITH_PDF = ([TEXT_PART, PDF_PART], b"mixed", (b"boundary", b"b1"), None, None, None)

ALTERNATIVE = ([TEXT_PART, HTML_PART], b"alternative", (b"boundary", b"b2"), None, None, None)


def header_block(subject="Hallo", sender="Alice <alice@example.com>", to="bob@example.com", extra=""):
    return (
        f"Subject: {subject}\r\n"
        f"From: {sender}\r\n"
        f"To: {to}\r\n"
        f"Date: Mon, 5 Oct 2026 09:30:00 +0200\r\n"
        f"{extra}"
        "\r\n"
    ).encode("utf-8")


def listing_entry(uid, flags=(), bodystructure=TEXT_PART):
    return {
        b"BODY[HEADER]": header_block(subject=f"Mail {uid}"),
        b"BODY[TEXT]": b"Body",
        b"FLAGS": tuple(flags),
        b"BODYSTRUCTURE": bodystructure,
    }


@pytest.fixture
def make_listing_entry():
    return listing_entry


@pytest.fixture
def make_header_block():
    return header_block


# ===== FLASK APP FIXTURES =====

@pytest.fixture
def app():
    """Flask app instance for testing (frische In-Memory DB pro Test)."""
    from mailgate.app_factory import create_app

    app = create_app(config_name="testing")
    yield app


@pytest.fixture
def client(app):
    """Flask test client."""
    return app.test_client()


@pytest.fixture
def models():
    return importlib.import_module(".02_models", "mailgate")


@pytest.fixture
def vault(app):
    encryption = importlib.import_module(".08_encryption", "mailgate")
    return encryption.CredentialVault(app.config["MAIL_ENCRYPTION_KEY"])


@pytest.fixture
def db_session(app):
    """Database session on the app's engine."""
    from mailgate.helpers import get_db_session

    with get_db_session() as db:
        yield db


# ===== AUTHENTICATION FIXTURES =====

@pytest.fixture
def test_user(db_session, models):
    """Create a test user."""
    user = models.User(username="testuser", email="test@example.com")
    db_session.add(user)
    db_session.commit()
    return user


@pytest.fixture
def logged_in_client(client, test_user):
    """Test client with a Flask-Login session for test_user."""
    with client.session_transaction() as sess:
        sess["_user_id"] = str(test_user.id)
        sess["_fresh"] = True
    return client


@pytest.fixture
def mail_account(db_session, models, test_user, vault):
    """Gespeicherter Mail-Account für test_user (Passwort 'imap-secret')."""
    account = models.MailAccount(
        user_id=test_user.id,
        email="test@example.com",
        imap_host="imap.example.com",
        imap_port=993,
        imap_secure=True,
        smtp_host="smtp.example.com",
        smtp_port=465,
        smtp_secure=True,
        username="test@example.com",
        encrypted_password=vault.encrypt("imap-secret"),
    )
    db_session.add(account)
    db_session.commit()
    return account
