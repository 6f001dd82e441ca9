"""Tests für mailgate/08_encryption.py (CredentialVault)"""

import importlib

import pytest

from mailgate.services.mail_errors import CorruptCredentialError

encryption = importlib.import_module(".08_encryption", "mailgate")


@pytest.fixture
def vault():
    return encryption.CredentialVault("unit-test-secret")


class TestCredentialVault:
    def test_roundtrip(self, vault):
        token = vault.encrypt("p4ssw0rd-äöü")
        assert vault.decrypt(token) == "p4ssw0rd-äöü"

    def test_token_format(self, vault):
        iv_hex, sep, ct_hex = vault.encrypt("secret").partition(":")
        assert sep == ":"
        assert len(bytes.fromhex(iv_hex)) == 16
        assert len(bytes.fromhex(ct_hex)) % 16 == 0

    def test_fresh_iv_per_encryption(self, vault):
        assert vault.encrypt("same") != vault.encrypt("same")

    def test_key_is_padded_and_truncated(self):
        assert encryption.CredentialVault.normalize_key("abc") == b"abc" + b" " * 29
        assert encryption.CredentialVault.normalize_key("x" * 40) == b"x" * 32

    def test_wrong_key_is_corrupt_not_crash(self, vault):
        token = vault.encrypt("secret")
        other = encryption.CredentialVault("another-secret")
        # falscher Schlüssel: Padding ungültig oder Müll-Klartext
        try:
            assert other.decrypt(token) != "secret"
        except CorruptCredentialError:
            pass

    @pytest.mark.parametrize(
        "token",
        [
            "",
            None,
            "no-colon-here",
            "zz:00",
            "00ff:00ff",
            "00" * 16 + ":",
            "00" * 16 + ":" + "00" * 15,
        ],
    )
    def test_malformed_tokens(self, vault, token):
        with pytest.raises(CorruptCredentialError) as exc_info:
            vault.decrypt(token)
        assert exc_info.value.code == "CORRUPT_CREDENTIAL"

    def test_resolve_secret_prefers_mail_encryption_key(self, monkeypatch):
        monkeypatch.setenv("MAIL_ENCRYPTION_KEY", "primary")
        monkeypatch.setenv("ARGON2_SECRET", "fallback")
        assert encryption.resolve_secret() == "primary"

    def test_resolve_secret_default(self, monkeypatch):
        monkeypatch.delenv("MAIL_ENCRYPTION_KEY", raising=False)
        monkeypatch.delenv("ARGON2_SECRET", raising=False)
        assert encryption.resolve_secret() == encryption.DEFAULT_SECRET
