"""
Mail Gateway - Datenbankmodelle (SQLAlchemy)

User:        minimaler Benutzer-Datensatz (Verwaltung liegt außerhalb des Gateways)
MailAccount: genau 0 oder 1 IMAP/SMTP-Account pro Benutzer
"""

from datetime import datetime, UTC
from typing import Any, Dict

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    event,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker
from sqlalchemy.pool import StaticPool
from sqlalchemy import create_engine

Base = declarative_base()

DEFAULT_IMAP_PORT = 993
DEFAULT_SMTP_PORT = 465


class User(Base):
    """Benutzer des Dashboards (nur was das Gateway braucht)"""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    username = Column(String(80), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False, index=True)
    created_at = Column(DateTime, default=lambda: datetime.now(UTC))

    mail_account = relationship(
        "MailAccount", back_populates="user", uselist=False, cascade="all, delete-orphan"
    )

    def __repr__(self):
        return f"<User(id={self.id}, username='***')>"


class MailAccount(Base):
    """Mail-Account eines Benutzers (1:1)

    Das Passwort liegt nur verschlüsselt vor (CredentialVault, "iv:ciphertext").
    Ein zweiter Account für denselben Benutzer überschreibt den ersten (Upsert).
    """

    __tablename__ = "mail_accounts"

    id = Column(Integer, primary_key=True)
    user_id = Column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True
    )

    email = Column(String(320), nullable=False)

    # IMAP
    imap_host = Column(String(255), nullable=False)
    imap_port = Column(Integer, default=DEFAULT_IMAP_PORT, nullable=False)
    imap_secure = Column(Boolean, default=True, nullable=False)

    # SMTP
    smtp_host = Column(String(255), nullable=False)
    smtp_port = Column(Integer, default=DEFAULT_SMTP_PORT, nullable=False)
    smtp_secure = Column(Boolean, default=True, nullable=False)

    username = Column(String(320), nullable=False)
    encrypted_password = Column(Text, nullable=False)

    created_at = Column(DateTime, default=lambda: datetime.now(UTC))
    updated_at = Column(
        DateTime, default=lambda: datetime.now(UTC), onupdate=lambda: datetime.now(UTC)
    )

    user = relationship("User", back_populates="mail_account")

    def to_public_dict(self) -> Dict[str, Any]:
        """API-Darstellung ohne Passwort (nur hasPassword)"""
        return {
            "id": self.id,
            "email": self.email,
            "imapHost": self.imap_host,
            "imapPort": self.imap_port,
            "imapSecure": self.imap_secure,
            "smtpHost": self.smtp_host,
            "smtpPort": self.smtp_port,
            "smtpSecure": self.smtp_secure,
            "username": self.username,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
            "hasPassword": True,
        }

    def __repr__(self):
        # Security: kein Passwort-Blob in Logs
        return f"<MailAccount(id={self.id}, user_id={self.user_id})>"


def init_db(database_url: str):
    """Engine + Session-Factory anlegen, Tabellen erstellen

    SQLite: WAL + Foreign Keys, In-Memory-DBs teilen eine Verbindung (StaticPool).
    """
    if database_url.startswith("sqlite"):
        kwargs = {"connect_args": {"check_same_thread": False, "timeout": 30.0}}
        if database_url in ("sqlite://", "sqlite:///:memory:"):
            kwargs["poolclass"] = StaticPool
        engine = create_engine(database_url, **kwargs)

        @event.listens_for(engine, "connect")
        def set_sqlite_pragma(dbapi_conn, connection_record):
            """SQLite Pragmas für Multi-Worker Concurrency"""
            cursor = dbapi_conn.cursor()
            cursor.execute("PRAGMA foreign_keys=ON")
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA busy_timeout=30000")
            cursor.close()
    else:
        engine = create_engine(
            database_url,
            pool_size=20,
            max_overflow=40,
            pool_recycle=3600,
            connect_args={"connect_timeout": 10},
        )

    Base.metadata.create_all(engine)
    Session = sessionmaker(bind=engine)
    return engine, Session
