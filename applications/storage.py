"""
Blob storage seam for application documents.

The lifecycle code only talks to a ``BlobStorage``; the default
implementation writes through Django's ``default_storage`` so deployments
choose the concrete backend with ``STORAGES`` / ``DEFAULT_FILE_STORAGE``.
"""

import logging
import os
import uuid
from typing import Protocol

from django.conf import settings
from django.core.files.storage import default_storage
from django.utils.text import get_valid_filename

from .exceptions import NotFound, StorageFault

logger = logging.getLogger(__name__)


class BlobStorage(Protocol):
    def store(self, directory, uploaded_file) -> str:
        ...

    def retrieve(self, path):
        ...

    def exists(self, path) -> bool:
        ...

    def delete(self, path) -> None:
        ...


class DjangoBlobStorage:
    """
    ``BlobStorage`` backed by a Django storage (``default_storage`` unless
    another one is given).
    """

    def __init__(self, storage=None, prefix=None):
        self.storage = storage or default_storage
        self.prefix = prefix if prefix is not None else getattr(settings, 'DOCUMENT_STORAGE_PREFIX', 'iin')

    def build_name(self, directory, original_name):
        base = get_valid_filename(os.path.basename(original_name or 'document')) or 'document'
        return '/'.join(part for part in (self.prefix, directory, f"{uuid.uuid4().hex}_{base}") if part)

    def store(self, directory, uploaded_file):
        name = self.build_name(directory, getattr(uploaded_file, 'name', None))
        try:
            stored = self.storage.save(name, uploaded_file)
        except OSError as exc:
            logger.error(f"[BlobStorage] Failed to store {name}: {exc}")
            raise StorageFault("Failed to store uploaded file", rule="storage_write") from exc
        logger.debug(f"[BlobStorage] Stored {stored}")
        return stored

    def retrieve(self, path):
        if not self.storage.exists(path):
            raise NotFound("Stored file is missing", rule="blob_missing")
        try:
            return self.storage.open(path, 'rb')
        except OSError as exc:
            logger.error(f"[BlobStorage] Failed to open {path}: {exc}")
            raise StorageFault("Failed to read stored file", rule="storage_read") from exc

    def exists(self, path):
        return self.storage.exists(path)

    def delete(self, path):
        try:
            self.storage.delete(path)
        except OSError as exc:
            # Orphaned blob; the document row was never written.
            logger.error(f"[BlobStorage] Failed to delete {path}: {exc}")


def get_blob_storage():
    return DjangoBlobStorage()
