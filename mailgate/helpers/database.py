"""Database session helpers for all blueprints.

The engine is created once per process by ``configure_database()``
(called from ``create_app``); request handlers only use ``get_db_session()``.
"""

from contextlib import contextmanager
import importlib
import logging

logger = logging.getLogger(__name__)

# Lazy imports to avoid circular dependencies
_SessionLocal = None
_engine = None
_models = None


def _get_models():
    """Lazy load models module to avoid circular imports."""
    global _models
    if _models is None:
        _models = importlib.import_module(".02_models", "mailgate")
    return _models


def configure_database(database_url: str):
    """Create engine + session factory for the given URL and create tables.

    Calling it again (e.g. a second test app) replaces the previous engine.
    """
    global _engine, _SessionLocal
    if _engine is not None:
        _engine.dispose()
    _engine, _SessionLocal = _get_models().init_db(database_url)
    logger.info(f"Database configured ({_engine.dialect.name})")
    return _engine


@contextmanager
def get_db_session():
    """Context manager for database sessions.

    Usage:
        with get_db_session() as db:
            account = get_mail_account(db, user_id)

    Yields:
        SQLAlchemy session that auto-closes on exit
    """
    if _SessionLocal is None:
        raise RuntimeError("Database not configured, call configure_database() first")
    db = _SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_user(db, user_id: int):
    models = _get_models()
    return db.query(models.User).filter_by(id=user_id).first()


def get_mail_account(db, user_id: int):
    """Mail account of a user (0 or 1), None if not configured."""
    models = _get_models()
    return db.query(models.MailAccount).filter_by(user_id=user_id).first()


def upsert_mail_account(db, user_id: int, **fields):
    """Create or overwrite the user's single mail account.

    Caller commits.

    Returns:
        MailAccount instance (new or updated)
    """
    models = _get_models()
    account = get_mail_account(db, user_id)
    if account is None:
        account = models.MailAccount(user_id=user_id, **fields)
        db.add(account)
        logger.info(f"upsert_mail_account: neuer Account für User {user_id}")
    else:
        for key, value in fields.items():
            setattr(account, key, value)
        logger.info(f"upsert_mail_account: Account {account.id} von User {user_id} überschrieben")
    return account


def delete_mail_account(db, user_id: int) -> bool:
    """Delete the user's mail account. Idempotent.

    Returns:
        True if an account was deleted, False if there was none
    """
    account = get_mail_account(db, user_id)
    if account is None:
        return False
    db.delete(account)
    return True
