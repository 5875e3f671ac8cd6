"""Encryption at rest for the server-held GitHub token."""

from __future__ import annotations

import logging
import re

import nacl.utils
from nacl.exceptions import CryptoError
from nacl.pwhash import argon2id
from nacl.secret import SecretBox

_logger = logging.getLogger(__name__)

_HEX_PART = re.compile(r"^[0-9a-f]+$", re.IGNORECASE)


class TokenEncryption:
    """Password based SecretBox encryption using the ``salt:nonce:ciphertext`` hex encoding."""

    def __init__(
        self,
        password: str,
        *,
        opslimit: int = argon2id.OPSLIMIT_INTERACTIVE,
        memlimit: int = argon2id.MEMLIMIT_INTERACTIVE,
    ) -> None:
        if not password:
            raise ValueError("An encryption password is required")
        self._password = password.encode("utf-8")
        self._opslimit = opslimit
        self._memlimit = memlimit

    def _box(self, salt: bytes) -> SecretBox:
        key = argon2id.kdf(
            SecretBox.KEY_SIZE,
            self._password,
            salt,
            opslimit=self._opslimit,
            memlimit=self._memlimit,
        )
        return SecretBox(key)

    def encrypt(self, token: str) -> str:
        salt = nacl.utils.random(argon2id.SALTBYTES)
        nonce = nacl.utils.random(SecretBox.NONCE_SIZE)
        message = self._box(salt).encrypt(token.encode("utf-8"), nonce)
        return ":".join(part.hex() for part in (salt, nonce, message.ciphertext))

    def decrypt(self, encoded: str) -> str:
        parts = encoded.split(":")
        if len(parts) != 3:
            raise ValueError("Invalid encrypted token format")
        try:
            salt, nonce, ciphertext = (bytes.fromhex(part) for part in parts)
        except ValueError as exc:
            raise ValueError("Invalid encrypted token format") from exc
        return self._box(salt).decrypt(ciphertext, nonce).decode("utf-8")

    @staticmethod
    def is_encrypted(value: str) -> bool:
        parts = value.split(":")
        return len(parts) == 3 and all(_HEX_PART.match(part) for part in parts)


def get_decrypted_token(value: str | None, password: str | None) -> str | None:
    """Return the usable server token, decrypting it when it is stored encrypted."""

    if not value:
        return None
    if not TokenEncryption.is_encrypted(value):
        return value
    if not password:
        _logger.error("Server GitHub token is encrypted but no encryption password is configured")
        return None
    try:
        return TokenEncryption(password).decrypt(value)
    except (CryptoError, ValueError):
        _logger.exception("Failed to decrypt the server GitHub token")
        return None
