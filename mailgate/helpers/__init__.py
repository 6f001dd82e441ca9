"""Shared helper modules for all blueprints.

This package provides common functionality for all blueprints
to avoid code duplication across blueprints.
"""

from .database import (
    configure_database,
    delete_mail_account,
    get_user,
    get_db_session,
    get_mail_account,
    upsert_mail_account,
)
from .validation import validate_string, validate_integer, validate_email, validate_port, validate_flag
from .responses import api_success, api_error

__all__ = [
    # Database helpers
    "configure_database",
    "get_db_session",
    "get_user",
    "get_mail_account",
    "upsert_mail_account",
    "delete_mail_account",
    # Validation helpers
    "validate_string",
    "validate_integer",
    "validate_email",
    "validate_port",
    "validate_flag",
    # Response helpers
    "api_success",
    "api_error",
]
