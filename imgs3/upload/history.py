"""
Local upload history.

Every successful upload leaves a copy of the image in the history directory.
The file name packs the storage kind, the delete token and the remote object
name (`s3-<token>-<name>`), so a later delete can be issued from the history
listing alone. Entries are recognised by that packed shape, not by extension:
brokers may issue object names without a `.png` suffix.
"""

import logging
import os
from typing import List, Optional
from urllib.parse import quote, unquote

from .models import HistoryEntry

logger = logging.getLogger(__name__)

STORAGE_TYPE_S3 = "s3"
SEPARATOR = "-"
STORAGE_KINDS = (STORAGE_TYPE_S3,)


def _escape(value: str) -> str:
    return quote(value, safe="").replace(SEPARATOR, "%2D")


class History:
    """History collaborator backed by a directory of image files"""

    def __init__(self, path: str, max_size: int = 25):
        self._path = os.path.join(os.path.expanduser(path), "")
        self.max_size = max_size
        os.makedirs(self._path, exist_ok=True)

    def path(self) -> str:
        """History root, always ending with a path separator"""
        return self._path

    def pack_file_name(self, storage_kind: str, delete_token: str, object_name: str) -> str:
        packed = _escape(object_name)
        if storage_kind:
            if delete_token:
                packed = SEPARATOR.join([_escape(storage_kind), _escape(delete_token), packed])
            else:
                packed = SEPARATOR.join([_escape(storage_kind), packed])
        return packed

    def unpack_file_name(self, packed: str) -> HistoryEntry:
        file_name = os.path.basename(packed)
        parts = [unquote(part) for part in file_name.split(SEPARATOR)]

        if len(parts) == 3:
            kind, token, name = parts
        elif len(parts) == 2:
            kind, token, name = parts[0], "", parts[1]
        else:
            kind, token, name = "", "", unquote(file_name)

        return HistoryEntry(
            storage_kind=kind,
            delete_token=token,
            object_name=name,
            path=os.path.join(self._path, file_name)
        )

    def save(self, image: bytes, packed: str) -> str:
        """Write the image under its packed name and trim old entries"""
        full_path = os.path.join(self._path, packed)
        with open(full_path, "wb") as f:
            f.write(image)
        logger.debug(f"Saved history entry {packed}")
        self._trim()
        return full_path

    def remove(self, storage_kind: str, delete_token: str, object_name: str) -> bool:
        """Delete the local copy for an uploaded object, if present"""
        full_path = self._path + self.pack_file_name(storage_kind, delete_token, object_name)
        if not os.path.exists(full_path):
            return False
        os.remove(full_path)
        logger.debug(f"Removed history entry {full_path}")
        return True

    def find(self, object_name: str) -> Optional[HistoryEntry]:
        for entry in self.entries():
            if entry.object_name == object_name:
                return entry
        return None

    def _is_entry(self, name: str) -> bool:
        if not os.path.isfile(os.path.join(self._path, name)):
            return False
        kind = name.split(SEPARATOR, 1)[0]
        if SEPARATOR in name and unquote(kind) in STORAGE_KINDS:
            return True
        # Plain names without a storage kind
        return name.lower().endswith(".png")

    def history(self) -> List[str]:
        """History file names, newest first"""
        files = [name for name in os.listdir(self._path) if self._is_entry(name)]
        files.sort(key=lambda name: os.path.getmtime(os.path.join(self._path, name)), reverse=True)
        return files

    def _trim(self) -> None:
        for stale in self.history()[self.max_size:]:
            os.remove(os.path.join(self._path, stale))
            logger.debug(f"Trimmed history entry {stale}")

    def entries(self) -> List[HistoryEntry]:
        return [self.unpack_file_name(name) for name in self.history()]
