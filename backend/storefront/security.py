import logging
import os
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken
from passlib.context import CryptContext

logger = logging.getLogger(__name__)

pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")


def hash_password(plain: str) -> str:
    return pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return pwd_context.verify(plain, hashed)


# ── Fernet encryption for values persisted outside the database ──────────────
class SettingsCipher:
    """Encrypts secrets stored in the data settings file.

    The key comes from ``STOREFRONT_SETTINGS_KEY`` when set, otherwise from a
    key file next to the settings file, generated on first use.
    """

    def __init__(self, key: Optional[str] = None, key_path: Optional[str] = None):
        self._key = key
        self._key_path = key_path
        self._fernet: Optional[Fernet] = None

    def _load_fernet(self) -> Fernet:
        if self._fernet is not None:
            return self._fernet
        key = self._key
        if not key and self._key_path:
            if os.path.exists(self._key_path):
                with open(self._key_path, "r") as f:
                    key = f.read().strip()
            else:
                key = Fernet.generate_key().decode()
                os.makedirs(os.path.dirname(self._key_path) or ".", exist_ok=True)
                with open(self._key_path, "w") as f:
                    f.write(key + "\n")
                logger.info("Generated settings encryption key at %s", self._key_path)
        if not key:
            raise RuntimeError("No settings encryption key configured")
        self._fernet = Fernet(key.encode() if isinstance(key, str) else key)
        return self._fernet

    def encrypt(self, value: str) -> str:
        return self._load_fernet().encrypt(value.encode()).decode()

    def decrypt(self, encrypted: str) -> str:
        try:
            return self._load_fernet().decrypt(encrypted.encode()).decode()
        except InvalidToken as e:
            raise ValueError("Encrypted value could not be decrypted") from e
