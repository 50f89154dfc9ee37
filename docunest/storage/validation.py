"""
Upload validation for vault documents.

Validates files by:
1. Extension / MIME type allowlist (pdf, png, jpg, jpeg, docx)
2. Magic bytes (file signature) matching the claimed type
3. Size ceiling (configured, checked by the upload route)
"""
import os
import re
import logging

logger = logging.getLogger(__name__)

# Maps file type (extension without dot) -> accepted signatures (offset, bytes)
MAGIC_SIGNATURES: dict[str, list[tuple[int, bytes]]] = {
    "pdf": [(0, b"%PDF")],
    "png": [(0, b"\x89PNG\r\n\x1a\n")],
    "jpg": [(0, b"\xff\xd8\xff")],
    "jpeg": [(0, b"\xff\xd8\xff")],
    # DOCX is a ZIP container
    "docx": [(0, b"PK\x03\x04")],
}

DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

# Canonical content type served back on download
FILE_TYPE_CONTENT_TYPES: dict[str, str] = {
    "pdf": "application/pdf",
    "png": "image/png",
    "jpg": "image/jpeg",
    "jpeg": "image/jpeg",
    "docx": DOCX_CONTENT_TYPE,
}

ALLOWED_CONTENT_TYPES = {
    "application/pdf",
    "image/png",
    "image/jpeg",
    "image/jpg",
    DOCX_CONTENT_TYPE,
}

# Clients that cannot tell us better send one of these
GENERIC_CONTENT_TYPES = {"", "application/octet-stream"}

ALLOWED_FILE_TYPES = set(MAGIC_SIGNATURES.keys())


class FileValidator:
    """Validates uploaded documents for type and content."""

    @staticmethod
    def file_type_for(filename: str) -> str:
        """Lower-cased extension without the dot ('' when there is none)."""
        return os.path.splitext(filename)[1].lower().lstrip(".")

    @staticmethod
    def validate_content_type(content_type: str) -> bool:
        return content_type in ALLOWED_CONTENT_TYPES or content_type in GENERIC_CONTENT_TYPES

    @staticmethod
    def validate_magic_bytes(data: bytes, file_type: str) -> bool:
        """
        Validate file content matches the claimed type by checking magic bytes.

        Stops a renamed executable from being stored as a "pdf".
        """
        signatures = MAGIC_SIGNATURES.get(file_type)
        if not signatures:
            logger.warning(f"No magic signature defined for {file_type}")
            return False

        for offset, signature in signatures:
            if data[offset:offset + len(signature)] == signature:
                return True

        logger.warning(
            f"Magic byte mismatch: claimed {file_type}, "
            f"header bytes: {data[:8].hex()}"
        )
        return False

    @staticmethod
    def sanitize_filename(filename: str) -> str:
        """
        Sanitize a display filename.

        - Strips path components (directory traversal prevention)
        - Removes non-alphanumeric characters (except . - _ and spaces)
        - Limits length to 255 characters
        - Rejects hidden files (starting with .)
        """
        filename = os.path.basename(filename.replace("\\", "/"))
        filename = re.sub(r'[^\w\s\-.]', '_', filename)
        filename = re.sub(r'\s+', ' ', filename).strip()
        filename = filename.lstrip('.')

        if len(filename) > 255:
            name, ext = os.path.splitext(filename)
            filename = name[:255 - len(ext)] + ext

        if not filename:
            filename = "unnamed_file"

        return filename

    @classmethod
    def validate_upload(
        cls,
        data: bytes,
        claimed_content_type: str,
        filename: str,
    ) -> tuple[bool, str, str, str]:
        """
        Full validation pipeline for an upload (size is checked by the caller).

        Returns (is_valid, error_message, sanitized_filename, file_type).
        """
        if not data:
            return False, "Uploaded file is empty", "", ""

        safe_filename = cls.sanitize_filename(filename)
        file_type = cls.file_type_for(safe_filename)

        if file_type not in ALLOWED_FILE_TYPES or not cls.validate_content_type(claimed_content_type):
            return (
                False,
                "Invalid file type. Only PDF, PNG, JPG, JPEG, and DOCX files are allowed.",
                "",
                "",
            )

        if not cls.validate_magic_bytes(data, file_type):
            return False, "File content does not match its file type", "", ""

        return True, "", safe_filename, file_type
