"""Attachment storage for questions and answers.

Uploaded files are written to ``config.UPLOAD_DIR`` under a random name and
only their metadata is kept on the question/answer row.
"""

from __future__ import annotations

import logging
import uuid
from pathlib import Path

from fastapi import UploadFile

from askmate.core import config
from askmate.core.exceptions import UploadRejected
from askmate.database import utcnow

logger = logging.getLogger(__name__)

CHUNK_SIZE = 1024 * 1024


def _format_size(size: int) -> str:
    if size >= 1024 * 1024:
        return f'{size / (1024 * 1024):g} MB'
    if size >= 1024:
        return f'{size / 1024:g} KB'
    return f'{size} bytes'


def _write_upload(upload: UploadFile, target_dir: Path, max_size: int) -> dict:
    original_name = Path(upload.filename or 'upload').name
    stored_name = f'{uuid.uuid4().hex}{Path(original_name).suffix.lower()}'
    path = target_dir / stored_name

    size = 0
    try:
        with path.open('wb') as output:
            while True:
                chunk = upload.file.read(CHUNK_SIZE)
                if not chunk:
                    break
                size += len(chunk)
                if size > max_size:
                    break
                output.write(chunk)
    except OSError:
        path.unlink(missing_ok=True)
        raise

    if size > max_size:
        path.unlink(missing_ok=True)
        raise UploadRejected(f'{original_name} exceeds the {_format_size(max_size)} limit.')

    return {
        'filename': stored_name,
        'original_name': original_name,
        'mimetype': upload.content_type or 'application/octet-stream',
        'size': size,
        'path': str(path),
        'uploaded_at': utcnow().isoformat(),
    }


def store_uploads(files: list[UploadFile] | None, settings: dict, upload_dir: str | None = None) -> list[dict]:
    """Validate ``files`` against a class's ``settings`` and write them to disk.

    Returns one metadata dict per stored file. On rejection nothing is left
    on disk and ``UploadRejected`` is raised.
    """
    uploads = [upload for upload in files or [] if upload.filename]
    if not uploads:
        return []

    if not settings.get('allow_file_uploads', True):
        raise UploadRejected('File uploads are not allowed in this class.')

    if len(uploads) > config.MAX_FILES_PER_UPLOAD:
        raise UploadRejected(f'You can upload at most {config.MAX_FILES_PER_UPLOAD} files at a time.')

    allowed_types = settings.get('allowed_file_types') or config.DEFAULT_ALLOWED_FILE_TYPES
    for upload in uploads:
        if upload.content_type not in allowed_types:
            raise UploadRejected(f'File type {upload.content_type} is not allowed in this class.')

    max_size = settings.get('max_file_size') or config.DEFAULT_MAX_FILE_SIZE
    target_dir = Path(upload_dir or config.UPLOAD_DIR)
    target_dir.mkdir(parents=True, exist_ok=True)

    stored: list[dict] = []
    try:
        for upload in uploads:
            stored.append(_write_upload(upload, target_dir, max_size))
    except Exception:
        discard_uploads(stored)
        raise

    logger.info('Stored %d uploaded file(s) in %s', len(stored), target_dir)
    return stored


def discard_uploads(stored: list[dict]) -> None:
    for metadata in stored:
        Path(metadata['path']).unlink(missing_ok=True)


def find_stored_file(files: list[dict], filename: str) -> dict | None:
    for metadata in files or []:
        if metadata.get('filename') == filename:
            return metadata
    return None
