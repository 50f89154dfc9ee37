"""
Activity log for document operations.

One log line per upload, download, preview or delete. Payloads carry ids
and display names only.
"""
import logging

from docunest.events.bus import event_bus

logger = logging.getLogger("docunest.activity")


@event_bus.on('document.uploaded')
async def log_upload(data: dict):
    logger.info(
        f"[UPLOAD] User {data['user_id']} uploaded file: {data['filename']} "
        f"(document {data['document_id']}, {data['file_size']} bytes)"
    )


@event_bus.on('document.downloaded')
async def log_download(data: dict):
    action = "previewed" if data.get('inline') else "downloaded"
    logger.info(
        f"[DOWNLOAD] User {data['user_id']} {action} file: {data['filename']} "
        f"(document {data['document_id']})"
    )


@event_bus.on('document.deleted')
async def log_delete(data: dict):
    logger.info(
        f"[DELETE] User {data['user_id']} deleted file: {data['filename']} "
        f"(document {data['document_id']})"
    )
