"""Blueprint registration module.

Blueprint Overview:
    mail_bp - Mail gateway (8 routes): account, folders, listing, detail, send, test
"""

from .mail import mail_bp

__all__ = [
    "mail_bp",
]
