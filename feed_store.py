"""JSON persistence for the news document."""
import logging
import os
import tempfile
from pathlib import Path

from pydantic import ValidationError

import config
from models import NewsDocument

logger = logging.getLogger(__name__)


def _file_mode() -> int:
    """Mode a plain open() would give a new file under the current umask."""
    umask = os.umask(0)
    os.umask(umask)
    return 0o666 & ~umask


class FeedStoreError(Exception):
    """The news document could not be written."""


class FeedStore:
    """Reads the previous news document and writes the new one.

    The document lives at ``data_path``; an identical copy is written to
    ``mirror_path``, which is served as a static file to the list UI.
    """

    def __init__(self, data_path: str = config.DATA_PATH, mirror_path: str = config.MIRROR_PATH):
        self.data_path = Path(data_path)
        self.mirror_path = Path(mirror_path)

    def load(self) -> NewsDocument:
        """Load the prior document; a missing or corrupt file counts as empty state."""
        if not self.data_path.exists():
            logger.info(f"No prior news document at {self.data_path}, starting empty")
            return NewsDocument()
        try:
            document = NewsDocument.model_validate_json(self.data_path.read_bytes())
        except (OSError, ValueError, ValidationError) as e:
            logger.warning(f"Could not load {self.data_path}, starting empty: {e}")
            return NewsDocument()
        logger.info(f"Loaded {len(document.items)} existing items from {self.data_path}")
        return document

    def save(self, document: NewsDocument):
        payload = document.to_json().encode("utf-8")
        for path in (self.data_path, self.mirror_path):
            try:
                self._write_atomic(path, payload)
            except OSError as e:
                raise FeedStoreError(f"Failed to write {path}: {e}") from e
        logger.info(f"Saved {len(document.items)} items to {self.data_path} and {self.mirror_path}")

    @staticmethod
    def _write_atomic(path: Path, payload: bytes):
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as tmp:
                tmp.write(payload)
            # mkstemp creates 0600; the mirror must stay readable by the web server
            os.chmod(tmp_name, _file_mode())
            os.replace(tmp_name, path)
        except OSError:
            if os.path.exists(tmp_name):
                os.remove(tmp_name)
            raise
