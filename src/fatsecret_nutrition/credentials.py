"""Persistent credential storage for OAuth1 consumer and user tokens."""

import json
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError as PydanticValidationError

from .config import Settings
from .models import Credentials

logger = logging.getLogger(__name__)


class CredentialStore:
    """File-based persistence for the credential JSON object.

    The file holds ``clientId``, ``clientSecret`` and optionally
    ``accessToken``, ``accessTokenSecret`` and ``userId``. Writes go to a
    temporary file that is renamed over the target, so readers never see a
    partially written file. There is no locking between writers; the last
    save wins.
    """

    def __init__(self, storage_path: str, defaults: Credentials | None = None) -> None:
        """Initialize the credential store.

        Args:
            storage_path: Path to the credential file (supports ~ expansion).
            defaults: Credentials used when the file is absent or unreadable,
                and as the base that the file contents are merged over.
        """
        self._storage_path = Path(os.path.expanduser(storage_path))
        self._defaults = defaults or Credentials()

    @classmethod
    def from_settings(cls, settings: Settings) -> "CredentialStore":
        """Create a store whose defaults come from the process configuration."""
        defaults = Credentials(
            consumer_key=settings.consumer_key,
            consumer_secret=settings.consumer_secret,
        )
        return cls(settings.credentials_path, defaults)

    @property
    def path(self) -> Path:
        return self._storage_path

    def _ensure_directory(self) -> None:
        """Ensure the storage directory exists with secure permissions."""
        directory = self._storage_path.parent
        if not directory.exists():
            directory.mkdir(parents=True, mode=0o700)

    def _read_storage(self) -> dict:
        """Read the storage file.

        Returns:
            Dictionary containing stored data, or empty dict if the file is
            missing or does not hold a JSON object.
        """
        if not self._storage_path.exists():
            return {}
        try:
            with open(self._storage_path) as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.debug(
                "Ignoring unreadable credential file %s: %s", self._storage_path, e
            )
            return {}
        if not isinstance(data, dict):
            return {}
        return data

    def _write_storage(self, data: dict) -> None:
        """Write data to the storage file with secure permissions.

        Args:
            data: Dictionary to write to storage.
        """
        self._ensure_directory()

        fd, temp_name = tempfile.mkstemp(
            dir=self._storage_path.parent,
            prefix=f".{self._storage_path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w") as f:
                json.dump(data, f, indent=2)

            # Set secure permissions (owner read/write only)
            os.chmod(temp_name, 0o600)

            # Atomic rename
            os.replace(temp_name, self._storage_path)
        except BaseException:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    def load(self) -> Credentials:
        """Load the stored credentials merged over the defaults.

        A missing or unparsable file is the normal first-run state and
        yields the defaults.

        Returns:
            The current credentials.
        """
        stored = self._read_storage()
        defaults = self._defaults.model_dump(by_alias=True, exclude_none=True)
        merged = {**defaults, **stored}
        try:
            return Credentials.model_validate(merged)
        except PydanticValidationError as e:
            logger.debug(
                "Ignoring invalid credential file %s: %s", self._storage_path, e
            )
            return self._defaults

    def save(self, credentials: Credentials) -> None:
        """Overwrite the credential file with ``credentials``.

        Args:
            credentials: The full credential object to persist.
        """
        self._write_storage(credentials.model_dump(by_alias=True, exclude_none=True))
        logger.info("Saved credentials to %s", self._storage_path)

    def clear_access_token(self) -> Credentials:
        """Remove the stored user access token, keeping the consumer credentials.

        Returns:
            The credentials after the token was removed.
        """
        credentials = self.load().without_access_token()
        self.save(credentials)
        return credentials
