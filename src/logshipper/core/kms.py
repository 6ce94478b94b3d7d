"""
Customer token decryption through AWS KMS.

The decrypt call runs once per process on a worker thread and is not
awaited: its result lands in the credential store whenever KMS answers,
racing with the first invocations.
"""

import base64
import binascii
import threading
from concurrent.futures import Future
from typing import Any, Optional, Protocol

import boto3
import structlog
from botocore.exceptions import BotoCoreError, ClientError

from ..config import CredentialSettings
from .credentials import CredentialStore, get_credential_store
from .exceptions import CredentialError

logger = structlog.get_logger(__name__)


class TokenDecryptor(Protocol):
    """Anything that turns the encrypted blob into the plaintext token."""

    def decrypt(self, encrypted_blob: str) -> str:
        ...


class KMSTokenDecryptor:
    """Decrypts a base64 KMS ciphertext with boto3."""

    def __init__(self, region_name: Optional[str] = None, client: Any = None) -> None:
        self.region_name = region_name
        self._client = client

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = boto3.client("kms", region_name=self.region_name)
        return self._client

    def decrypt(self, encrypted_blob: str) -> str:
        try:
            ciphertext = base64.b64decode(encrypted_blob, validate=True)
        except (binascii.Error, ValueError) as e:
            raise CredentialError(
                "Encrypted customer token is not valid base64",
                details={"error": str(e)},
            ) from e

        try:
            response = self.client.decrypt(CiphertextBlob=ciphertext)
        except ClientError as e:
            error_code = e.response.get("Error", {}).get("Code", "Unknown")
            raise CredentialError(
                f"KMS decrypt failed: {error_code}",
                details={"aws_error_code": error_code},
            ) from e
        except BotoCoreError as e:
            raise CredentialError(f"KMS decrypt failed: {e}") from e

        try:
            return response["Plaintext"].decode("utf-8")
        except (KeyError, AttributeError, UnicodeDecodeError) as e:
            raise CredentialError("KMS returned an unreadable plaintext") from e


def start_token_decryption(
    store: CredentialStore,
    decryptor: TokenDecryptor,
    encrypted_blob: str,
) -> Future:
    """
    Decrypt ``encrypted_blob`` on a daemon thread and settle ``store`` with the result.

    Returns a future completed when the store is settled; callers are not
    expected to wait on it, and interpreter exit does not wait either.
    """
    future: Future = Future()
    future.set_running_or_notify_cancel()

    def _run() -> None:
        try:
            token = decryptor.decrypt(encrypted_blob)
        except Exception as e:
            store.fail(e)
        else:
            store.resolve(token)
        finally:
            future.set_result(None)

    worker = threading.Thread(target=_run, name="token-decrypt", daemon=True)
    worker.start()

    logger.info("Customer token decryption started")
    return future


# Set once the process has kicked off decryption
_decryption: Optional[Future] = None


def bootstrap_credentials(
    settings: CredentialSettings,
    decryptor: Optional[TokenDecryptor] = None,
    store: Optional[CredentialStore] = None,
) -> CredentialStore:
    """
    Start the one decrypt call of this process.

    Without an explicit ``store`` the process-wide store is used, and later
    calls return it without decrypting again.
    """
    global _decryption

    process_wide = store is None
    if store is None:
        store = get_credential_store()
        if _decryption is not None:
            return store

    if store.is_terminal():
        return store

    if not settings.encrypted_token:
        store.fail(CredentialError("No encrypted customer token configured"))
        return store

    decryptor = decryptor or KMSTokenDecryptor(region_name=settings.aws_region)
    future = start_token_decryption(store, decryptor, settings.encrypted_token)
    if process_wide:
        _decryption = future
    return store


def reset_bootstrap() -> None:
    """Forget that decryption was started (tests only)."""
    global _decryption
    _decryption = None
