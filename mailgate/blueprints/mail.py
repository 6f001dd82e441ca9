"""Mail Blueprint - Account, Ordner, Listing, Detail, Versand.

Routes (8 total):
    1. /email/account (GET) - get_account
    2. /email/account (POST) - save_account
    3. /email/account (DELETE) - delete_account
    4. /email/folders (GET) - get_folders
    5. /email/emails/<folder> (GET) - get_emails
    6. /email/email/<folder>/<id> (GET) - get_email
    7. /email/send (POST) - send_email
    8. /email/test (POST) - test_connection

Jede IMAP/SMTP-Operation öffnet ihre eigene Session (siehe services/mail_gateway.py).
"""

from flask import Blueprint, current_app, request
from flask_login import current_user, login_required
from sqlalchemy.exc import IntegrityError
import logging

from mailgate.helpers import (
    api_error,
    api_success,
    delete_mail_account,
    get_db_session,
    get_mail_account,
    upsert_mail_account,
    validate_email,
    validate_flag,
    validate_integer,
    validate_port,
    validate_string,
)
from mailgate.helpers.rate_limit import PROBE_LIMIT, limiter
from mailgate.services.mail_errors import MailGatewayError, ValidationError
from mailgate.services.mail_gateway import (
    GatewayOptions,
    MailGatewayService,
    get_vault,
    probe_credentials,
)
from mailgate.services.smtp_sender import OutgoingEmail

mail_bp = Blueprint("mail", __name__, url_prefix="/email")
logger = logging.getLogger(__name__)

ALL_FIELDS_REQUIRED = "All fields are required"
DEFAULT_IMAP_PORT = 993
DEFAULT_SMTP_PORT = 465
DEFAULT_PAGE_LIMIT = 50


@mail_bp.errorhandler(MailGatewayError)
def handle_mail_error(e):
    logger.warning(f"[{e.code}] {request.method} {request.path}: {e.message}")
    return api_error(e.message, code=e.code, status_code=e.status_code)


@mail_bp.errorhandler(ValueError)
def handle_value_error(e):
    return api_error(str(e), code=ValidationError.code, status_code=400)


def _options():
    return GatewayOptions.from_config(current_app.config)


def _vault():
    return get_vault(current_app.config["MAIL_ENCRYPTION_KEY"])


def _gateway():
    """Gateway für den Account des eingeloggten Users (NO_ACCOUNT wenn keiner)"""
    with get_db_session() as db:
        return MailGatewayService.for_user(db, current_user.id, _vault(), _options())


def _json_body():
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _required(data, *keys):
    """Pflichtfelder: alle vorhanden und nicht leer, sonst 'All fields are required'

    Werte kommen ungekürzt zurück (Passwörter dürfen Leerzeichen enthalten).
    """
    values = []
    for key in keys:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            raise ValueError(ALL_FIELDS_REQUIRED)
        values.append(value)
    return values


def _query_int(name, default):
    raw = request.args.get(name)
    if raw is None or raw == "":
        return default
    return validate_integer(raw, name, min_val=0)


# ===== Account =====


@mail_bp.route("/account", methods=["GET"])
@login_required
def get_account():
    """Account des Users oder null (Passwort nie enthalten)"""
    with get_db_session() as db:
        account = get_mail_account(db, current_user.id)
        return api_success(account.to_public_dict() if account else None, include_null=True)


@mail_bp.route("/account", methods=["POST"])
@login_required
@limiter.limit(PROBE_LIMIT)
def save_account():
    """Account anlegen/ersetzen, nur nach erfolgreicher Live-Probe"""
    data = _json_body()
    email, imap_host, smtp_host, username, password = _required(
        data, "email", "imapHost", "smtpHost", "username", "password"
    )
    email = validate_email(email, "email")
    imap_host = validate_string(imap_host, "imapHost", max_len=255)
    smtp_host = validate_string(smtp_host, "smtpHost", max_len=255)
    imap_port = validate_port(data.get("imapPort"), "imapPort", DEFAULT_IMAP_PORT)
    smtp_port = validate_port(data.get("smtpPort"), "smtpPort", DEFAULT_SMTP_PORT)
    imap_secure = validate_flag(data.get("imapSecure"))
    smtp_secure = validate_flag(data.get("smtpSecure"))

    # Probe vor dem Speichern, Fehler werden klassifiziert zurückgegeben
    probe_credentials(_options(), imap_host, imap_port, username, password, imap_secure)

    fields = dict(
        email=email,
        imap_host=imap_host,
        imap_port=imap_port,
        imap_secure=imap_secure,
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_secure=smtp_secure,
        username=username,
        encrypted_password=_vault().encrypt(password),
    )

    with get_db_session() as db:
        try:
            try:
                account = upsert_mail_account(db, current_user.id, **fields)
                db.commit()
            except IntegrityError:
                # Paralleler POST hat den Account zuerst angelegt → überschreiben
                db.rollback()
                logger.warning(f"⚠️  Mail-Account von User {current_user.id} parallel angelegt, überschreibe")
                account = upsert_mail_account(db, current_user.id, **fields)
                db.commit()
        except Exception:
            db.rollback()
            raise
        logger.info(f"✅ Mail-Account {account.id} für User {current_user.id} gespeichert")
        return api_success({"id": account.id, "email": account.email})


@mail_bp.route("/account", methods=["DELETE"])
@login_required
def delete_account():
    """Account löschen (idempotent)"""
    with get_db_session() as db:
        try:
            deleted = delete_mail_account(db, current_user.id)
            db.commit()
        except Exception:
            db.rollback()
            raise
    if deleted:
        logger.info(f"🗑️ Mail-Account von User {current_user.id} gelöscht")
    return api_success({})


# ===== IMAP =====


@mail_bp.route("/folders", methods=["GET"])
@login_required
def get_folders():
    folders = _gateway().list_folders()
    return api_success([node.to_dict() for node in folders])


@mail_bp.route("/emails/<path:folder>", methods=["GET"])
@login_required
def get_emails(folder):
    limit = _query_int("limit", DEFAULT_PAGE_LIMIT)
    offset = _query_int("offset", 0)

    listing = _gateway().list_messages(folder, limit, offset)
    return api_success(
        {
            "emails": [summary.to_dict() for summary in listing.messages],
            "total": listing.total,
            "offset": offset,
            "limit": limit,
        }
    )


@mail_bp.route("/email/<path:folder>/<int:uid>", methods=["GET"])
@login_required
def get_email(folder, uid):
    detail = _gateway().read_message(folder, uid)
    return api_success(detail.to_dict())


# ===== SMTP =====


@mail_bp.route("/send", methods=["POST"])
@login_required
def send_email():
    email = OutgoingEmail.from_payload(_json_body())
    # vor Account-Lookup und SMTP-Verbindung
    email.validate()

    message_id = _gateway().send(email)
    logger.info(f"📤 Mail von User {current_user.id} versendet ({message_id})")
    return api_success({"sent": True})


@mail_bp.route("/test", methods=["POST"])
@login_required
@limiter.limit(PROBE_LIMIT)
def test_connection():
    """Zugangsdaten prüfen ohne zu speichern"""
    data = _json_body()
    imap_host, username, password = _required(data, "imapHost", "username", "password")
    imap_host = validate_string(imap_host, "imapHost", max_len=255)
    imap_port = validate_port(data.get("imapPort"), "imapPort", DEFAULT_IMAP_PORT)
    imap_secure = validate_flag(data.get("imapSecure"))

    probe_credentials(_options(), imap_host, imap_port, username, password, imap_secure)
    return api_success({"connected": True})
