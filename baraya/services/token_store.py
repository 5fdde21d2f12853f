"""
Secure Token Store - durable storage for exactly one secret: the session token.

Contract:
- Holds the raw bearer token string under a fixed service name
- Overwrite semantics; no business logic, never decodes the token
- MUST NEVER raise upstream: failures are logged and reported as
  False / None
"""

import logging
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken

logger = logging.getLogger(__name__)


class SecureTokenStore(ABC):
    """Abstract single-secret store."""

    @abstractmethod
    def set_token(self, token: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_token(self) -> Optional[str]:
        raise NotImplementedError

    @abstractmethod
    def remove_token(self) -> bool:
        raise NotImplementedError

    def has_token(self) -> bool:
        return self.get_token() is not None


class EncryptedFileTokenStore(SecureTokenStore):
    """
    Fernet-encrypted token file.

    Layout under `directory`:
        <service>.token  ciphertext of the token
        <service>.key    Fernet key, created with 0600 permissions when no
                         key is supplied
    """

    def __init__(self, service: str, directory: str, key: Optional[str] = None):
        self.service = service
        self.directory = Path(directory).expanduser()
        self.token_path = self.directory / f"{service}.token"
        self.key_path = self.directory / f"{service}.key"
        self._key = key.encode() if key else None
        self._fernet: Optional[Fernet] = None

    def _get_fernet(self) -> Fernet:
        if self._fernet is not None:
            return self._fernet

        key = self._key
        if key is None:
            if self.key_path.exists():
                key = self.key_path.read_bytes().strip()
            else:
                self.directory.mkdir(parents=True, exist_ok=True)
                key = Fernet.generate_key()
                self._write_private(self.key_path, key)
                logger.info(f"Generated token store key for service {self.service}")

        try:
            self._fernet = Fernet(key)
        except Exception as e:
            raise ValueError("Token store key is invalid. Make sure it is a valid 32-byte base64 string.") from e
        return self._fernet

    @staticmethod
    def _write_private(path: Path, data: bytes) -> None:
        tmp_path = path.with_suffix(path.suffix + ".tmp")
        fd = os.open(tmp_path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
        os.replace(tmp_path, path)

    def set_token(self, token: str) -> bool:
        try:
            ciphertext = self._get_fernet().encrypt(token.encode())
            self.directory.mkdir(parents=True, exist_ok=True)
            self._write_private(self.token_path, ciphertext)
            return True
        except Exception as e:
            logger.error(f"Error storing token: {e}")
            return False

    def get_token(self) -> Optional[str]:
        try:
            if not self.token_path.exists():
                return None
            ciphertext = self.token_path.read_bytes()
            return self._get_fernet().decrypt(ciphertext).decode()
        except InvalidToken:
            logger.warning("Stored token cannot be decrypted with the current key; ignoring it")
            return None
        except Exception as e:
            logger.error(f"Error retrieving token: {e}")
            return None

    def remove_token(self) -> bool:
        try:
            self.token_path.unlink()
            return True
        except FileNotFoundError:
            return True
        except Exception as e:
            logger.error(f"Error removing token: {e}")
            return False


class InMemoryTokenStore(SecureTokenStore):
    """Process-local store for tests and ephemeral sessions."""

    def __init__(self, token: Optional[str] = None):
        self._token = token
        self.writes = 0

    def set_token(self, token: str) -> bool:
        self._token = token
        self.writes += 1
        return True

    def get_token(self) -> Optional[str]:
        return self._token

    def remove_token(self) -> bool:
        self._token = None
        return True
