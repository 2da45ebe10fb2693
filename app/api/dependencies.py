"""
app/api/dependencies.py

Shared FastAPI dependencies for request validation.
"""

from __future__ import annotations

from fastapi import File, HTTPException, UploadFile, status

from app.config import get_import_settings
from app.parsers.tabular_parser import UnsupportedFormatError, detect_format


def get_tabular_upload(file: UploadFile = File(...)) -> UploadFile:
    """
    Validate that the upload has a supported extension and is within size limits.
    """

    try:
        detect_format(file.filename or "")
    except UnsupportedFormatError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=exc.to_dict(),
        ) from exc

    limit = get_import_settings().max_upload_bytes
    if file.size is not None and file.size > limit:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"Upload is {file.size} bytes; the limit is {limit} bytes.",
        )

    return file
