import base64
import hashlib
import json
import logging
from typing import Any

from cryptography.fernet import Fernet, InvalidToken
from sqlalchemy.types import TypeDecorator, Text

from healthcare_pro import config

logger = logging.getLogger("healthcare_pro")


def _build_cipher() -> Fernet:
    """Derive a stable Fernet key from the configured encryption secret."""
    secret = config.ENCRYPTION_SECRET.encode("utf-8")
    # Fernet wants a urlsafe-base64 encoded 32-byte key
    key = base64.urlsafe_b64encode(hashlib.sha256(secret).digest())
    return Fernet(key)


_CIPHER = _build_cipher()


def encrypt_text(value: str) -> str:
    return _CIPHER.encrypt(value.encode("utf-8")).decode("utf-8")


def decrypt_text(token: str):
    """Return the plaintext, or None when the token was written with another secret."""
    try:
        return _CIPHER.decrypt(token.encode("utf-8")).decode("utf-8")
    except InvalidToken:
        logger.warning({"event": "decrypt_failed", "reason": "invalid_token"})
        return None


class EncryptedText(TypeDecorator):
    """Free-text column (journal notes, prescription text) encrypted at rest with Fernet."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        if not isinstance(value, str):
            value = str(value)
        return encrypt_text(value)

    def process_result_value(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        return decrypt_text(value)


class EncryptedJSON(TypeDecorator):
    """JSON column (profile snapshots, medical history) encrypted at rest."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        return encrypt_text(json.dumps(value, default=str))

    def process_result_value(self, value: Any, dialect) -> Any:  # type: ignore[override]
        if value is None:
            return None
        raw = decrypt_text(value)
        if raw is None:
            return None
        return json.loads(raw)
