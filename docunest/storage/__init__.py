from docunest.storage.backend import StorageBackend, LocalStorageBackend, get_storage_backend, new_blob_name, owner_blob_key
from docunest.storage.encryption import EncryptedPayload, EnvelopeEncryptor, get_file_encryptor
from docunest.storage.validation import FileValidator

__all__ = [
    "StorageBackend",
    "LocalStorageBackend",
    "get_storage_backend",
    "new_blob_name",
    "owner_blob_key",
    "EncryptedPayload",
    "EnvelopeEncryptor",
    "get_file_encryptor",
    "FileValidator",
]
