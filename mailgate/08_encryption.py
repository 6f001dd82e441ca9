"""
Mail Gateway - Encryption Module
AES-256-CBC für das Mail-Account Passwort (at rest)

Token-Format: "<iv-hex>:<ciphertext-hex>"
Jeder Aufruf von encrypt() erzeugt einen neuen IV, das Token ist damit
selbstbeschreibend und ohne weiteren State entschlüsselbar.
"""

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
import os
import logging

from mailgate.services.mail_errors import CorruptCredentialError

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "dev-argon2-secret"


def resolve_secret() -> str:
    """Liest den Schlüssel aus der Umgebung (MAIL_ENCRYPTION_KEY > ARGON2_SECRET)"""
    return os.getenv("MAIL_ENCRYPTION_KEY") or os.getenv("ARGON2_SECRET") or DEFAULT_SECRET


class CredentialVault:
    """Verschlüsselt/Entschlüsselt Mail-Passwörter mit AES-256-CBC"""

    KEY_SIZE = 32
    IV_LENGTH = 16
    BLOCK_SIZE = 128

    def __init__(self, secret: str = None):
        self._key = self.normalize_key(secret if secret is not None else resolve_secret())

    @classmethod
    def normalize_key(cls, secret: str) -> bytes:
        """Bringt das Secret auf exakt 32 Bytes (mit Leerzeichen auffüllen / abschneiden)"""
        raw = secret.encode("utf-8")
        return raw.ljust(cls.KEY_SIZE, b" ")[: cls.KEY_SIZE]

    def _cipher(self, iv: bytes) -> Cipher:
        return Cipher(algorithms.AES(self._key), modes.CBC(iv))

    def encrypt(self, plaintext: str) -> str:
        """Verschlüsselt plaintext

        Args:
            plaintext: Klartext-Passwort

        Returns:
            "<iv-hex>:<ciphertext-hex>"
        """
        iv = os.urandom(self.IV_LENGTH)

        padder = padding.PKCS7(self.BLOCK_SIZE).padder()
        padded = padder.update(plaintext.encode("utf-8")) + padder.finalize()

        encryptor = self._cipher(iv).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return f"{iv.hex()}:{ciphertext.hex()}"

    def decrypt(self, token: str) -> str:
        """Entschlüsselt ein Token aus encrypt()

        Raises:
            CorruptCredentialError: Token ist kaputt oder passt nicht zum Schlüssel
        """
        if not token or not isinstance(token, str) or ":" not in token:
            raise CorruptCredentialError()

        iv_hex, _, ciphertext_hex = token.partition(":")

        try:
            iv = bytes.fromhex(iv_hex)
            ciphertext = bytes.fromhex(ciphertext_hex)
        except ValueError:
            logger.warning("Credential-Token enthält kein gültiges Hex")
            raise CorruptCredentialError() from None

        if len(iv) != self.IV_LENGTH or not ciphertext or len(ciphertext) % self.IV_LENGTH:
            logger.warning(f"Credential-Token hat ungültige Länge (iv={len(iv)}, ct={len(ciphertext)})")
            raise CorruptCredentialError()

        try:
            decryptor = self._cipher(iv).decryptor()
            padded = decryptor.update(ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(self.BLOCK_SIZE).unpadder()
            plaintext = unpadder.update(padded) + unpadder.finalize()
            return plaintext.decode("utf-8")
        except (ValueError, UnicodeDecodeError) as e:
            logger.warning(f"Decryption error: {type(e).__name__}")
            raise CorruptCredentialError() from None
