"""
Error taxonomy for the document vault.

Cryptographic failures and authorization denials are kept apart so callers
(and operators reading logs) can tell "your PIN is wrong" from "the stored
ciphertext is corrupt".
"""
import enum


class VaultError(Exception):
    """Base class for all vault errors."""


class ConfigurationError(VaultError):
    """Master key missing or malformed. Fatal at startup."""


class EncryptionError(VaultError):
    """Upload-time cipher failure. The upload must be aborted."""


class DecryptionError(VaultError):
    """Unwrap or decrypt failed: wrong master key, corrupt or mismatched material."""


class DenialReason(str, enum.Enum):
    NOT_FOUND = "not_found"
    PIN_REQUIRED = "pin_required"
    PIN_EMPTY = "pin_empty"
    INVALID_PIN = "invalid_pin"
    PIN_NOT_CONFIGURED = "pin_not_configured"


# reason -> (HTTP status, stable client-facing message)
_DENIALS: dict[DenialReason, tuple[int, str]] = {
    DenialReason.NOT_FOUND: (404, "File not found"),
    DenialReason.PIN_REQUIRED: (403, "PIN required to access this file"),
    DenialReason.PIN_EMPTY: (400, "PIN cannot be empty"),
    DenialReason.INVALID_PIN: (403, "Invalid PIN"),
    DenialReason.PIN_NOT_CONFIGURED: (403, "PIN not set for this file"),
}


class AuthorizationDenied(VaultError):
    """Ownership or PIN check failed. Never surfaced as a 500."""

    def __init__(self, reason: DenialReason):
        self.reason = reason
        self.status_code, self.message = _DENIALS[reason]
        super().__init__(self.message)
