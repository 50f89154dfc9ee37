"""
Access guard for document download and preview.

Decides whether a requester may receive a document's decrypted bytes:

    ownership -> PIN required? -> PIN supplied? -> PIN verified

A document the requester does not own is reported as not found, whatever
its PIN state, so the response never reveals that it exists. PIN checks use
the document's own PIN hash when it has one and the owner's account PIN
otherwise. A document that requires a PIN but has no hash anywhere is
denied.

The guard runs before any blob or key material is read.
"""
import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, Optional, Union

from docunest.errors import AuthorizationDenied, DenialReason
from docunest.models.models import Document
from docunest.models.schemas import normalize_pin
from docunest.utils.auth import verify_pin

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PerFilePin:
    """The document carries its own PIN hash."""
    pin_hash: str


@dataclass(frozen=True)
class AccountPin:
    """No per-file hash; the owner's account-level PIN applies."""
    pin_hash: str


@dataclass(frozen=True)
class NoPin:
    """Neither hash exists."""


PinSource = Union[PerFilePin, AccountPin, NoPin]


def resolve_pin_source(document_pin_hash: Optional[str], account_pin_hash: Optional[str]) -> PinSource:
    """Per-file hash wins over the account hash; neither gives NoPin."""
    if document_pin_hash:
        return PerFilePin(document_pin_hash)
    if account_pin_hash:
        return AccountPin(account_pin_hash)
    return NoPin()


class AccessGuard:
    """Ownership and PIN authorization for a single document request."""

    def __init__(self, pin_verifier: Callable[[str, str], bool] = verify_pin):
        self._verify = pin_verifier

    def _record(self, event: str, requester_id: int, document: Optional[Document], decision: str) -> None:
        # Never pass the PIN or any hash here
        document_id = document.id if document is not None else None
        document_name = document.original_filename if document is not None else None
        logger.info(
            f"{event}: user={requester_id} document={document_id} ({document_name})",
            extra={
                "event": event,
                "user_id": requester_id,
                "document_id": document_id,
                "document_name": document_name,
                "decision": decision,
            },
        )

    def _deny(
        self, event: str, requester_id: int, document: Optional[Document], reason: DenialReason
    ) -> AuthorizationDenied:
        self._record(event, requester_id, document, reason.value)
        return AuthorizationDenied(reason)

    def authorize(
        self,
        requester_id: int,
        document: Optional[Document],
        supplied_pin: Optional[str] = None,
        account_pin_hash: Optional[str] = None,
    ) -> None:
        """
        Allow or deny access; returns None when allowed.

        Args:
            requester_id: Authenticated user id.
            document: The requested document, or None if no such row exists.
            supplied_pin: PIN from the request, None when absent.
            account_pin_hash: The owner's account-level PIN hash.

        Raises:
            AuthorizationDenied: with the reason the request was refused.
        """
        if document is None:
            raise self._deny("document.access.not_found", requester_id, None, DenialReason.NOT_FOUND)

        if document.owner_id != requester_id:
            raise self._deny("document.access.not_found", requester_id, document, DenialReason.NOT_FOUND)

        if not document.requires_pin:
            self._record("document.access.granted", requester_id, document, "allowed")
            return

        if supplied_pin is None:
            raise self._deny("document.access.pin_missing", requester_id, document, DenialReason.PIN_REQUIRED)

        pin = normalize_pin(supplied_pin)
        if not pin:
            raise self._deny("document.access.pin_missing", requester_id, document, DenialReason.PIN_EMPTY)

        source = resolve_pin_source(document.pin_hash, account_pin_hash)

        if isinstance(source, NoPin):
            raise self._deny(
                "document.access.pin_not_configured", requester_id, document, DenialReason.PIN_NOT_CONFIGURED
            )

        if not self._verify(pin, source.pin_hash):
            raise self._deny("document.access.pin_invalid", requester_id, document, DenialReason.INVALID_PIN)

        self._record("document.access.pin_correct", requester_id, document, "allowed")


@lru_cache()
def get_access_guard() -> AccessGuard:
    return AccessGuard()
