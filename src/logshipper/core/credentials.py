"""
Write-once holder for the decrypted customer token.

The store starts PENDING and transitions exactly once, to READY with the
token or to FAILED with the decryption error. Readers poll ``status()``;
nothing here blocks.
"""

import threading
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from .exceptions import CredentialError

logger = structlog.get_logger(__name__)


class CredentialState(str, Enum):
    """Lifecycle of the customer token."""

    PENDING = "pending"
    READY = "ready"
    FAILED = "failed"


@dataclass(frozen=True)
class CredentialStatus:
    """Snapshot of the store at one instant."""
    state: CredentialState
    token: Optional[str] = None
    error: Optional[CredentialError] = None


def mask_token(token: Optional[str]) -> str:
    """Shorten a token for log output."""
    if not token:
        return "<none>"
    return token[:4] + "..." if len(token) > 4 else "***"


class CredentialStore:
    """
    Holds the customer token once it is available.

    Only the first ``resolve``/``fail`` call has any effect.
    """

    def __init__(self) -> None:
        self._status = CredentialStatus(CredentialState.PENDING)
        self._lock = threading.Lock()

    def status(self) -> CredentialStatus:
        return self._status

    @property
    def state(self) -> CredentialState:
        return self._status.state

    @property
    def token(self) -> Optional[str]:
        return self._status.token

    @property
    def error(self) -> Optional[CredentialError]:
        return self._status.error

    def is_ready(self) -> bool:
        return self._status.state is CredentialState.READY

    def is_terminal(self) -> bool:
        return self._status.state is not CredentialState.PENDING

    def resolve(self, token: str) -> bool:
        """Record the decrypted token. Returns False if the store was already settled."""
        return self._settle(CredentialStatus(CredentialState.READY, token=token))

    def fail(self, error: Exception) -> bool:
        """Record a permanent decryption failure."""
        if not isinstance(error, CredentialError):
            error = CredentialError(
                f"Failed to decrypt customer token: {error}",
                details={"error_type": type(error).__name__},
            )
        return self._settle(CredentialStatus(CredentialState.FAILED, error=error))

    def _settle(self, status: CredentialStatus) -> bool:
        with self._lock:
            if self._status.state is not CredentialState.PENDING:
                logger.warning(
                    "Credential store already settled, ignoring update",
                    current_state=self._status.state.value,
                    attempted_state=status.state.value,
                )
                return False
            self._status = status

        if status.state is CredentialState.READY:
            logger.info("Customer token ready", token=mask_token(status.token))
        else:
            logger.error("Customer token decryption failed", error=str(status.error))
        return True


# Global store instance
_credential_store: Optional[CredentialStore] = None


def get_credential_store() -> CredentialStore:
    """Get or create the process-wide credential store."""
    global _credential_store

    if _credential_store is None:
        _credential_store = CredentialStore()

    return _credential_store


def reset_credential_store() -> None:
    """Drop the process-wide store (tests only)."""
    global _credential_store
    _credential_store = None
