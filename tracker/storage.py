"""JSON file store for the tracker document.

Writes go to a temporary file in the same directory which then replaces
the data file, so a crash mid-write leaves the previous document intact.
"""

import json
import logging
import os
import tempfile
from pathlib import Path

from django.utils import timezone

from .exceptions import PersistenceFailure

logger = logging.getLogger(__name__)


class DocumentStore:
    """Reads and writes the single tracker document at `path`."""

    def __init__(self, path):
        self.path = Path(path)

    def __repr__(self):
        return f"<DocumentStore {self.path}>"

    def mtime(self):
        """Modification time of the data file, or None if it does not exist."""
        try:
            return self.path.stat().st_mtime_ns
        except FileNotFoundError:
            return None

    def load(self):
        """Read the document.

        Returns:
            The parsed JSON object, or None when no data file exists yet

        Raises:
            PersistenceFailure: The file is unreadable or not a JSON object
        """
        try:
            with open(self.path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
            raise PersistenceFailure(
                f"Could not read {self.path}: {e}", path=self.path
            ) from e

        if not isinstance(data, dict):
            raise PersistenceFailure(
                f"{self.path} does not hold a JSON object", path=self.path
            )
        return data

    def save(self, document):
        """Write the document atomically.

        Raises:
            PersistenceFailure: The file could not be written
        """
        fd = None
        tmp_path = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_path = tempfile.mkstemp(
                prefix=f".{self.path.name}.", suffix=".tmp", dir=self.path.parent
            )
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                fd = None
                json.dump(document, f, indent=2)
                f.write("\n")
            os.replace(tmp_path, self.path)
            tmp_path = None
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceFailure(
                f"Could not write {self.path}: {e}", path=self.path
            ) from e
        finally:
            if fd is not None:
                os.close(fd)
            if tmp_path is not None and os.path.exists(tmp_path):
                os.unlink(tmp_path)

        logger.debug("Saved tracker document", extra={"path": str(self.path)})

    def quarantine(self):
        """Move an unreadable data file aside so the next save cannot clobber it.

        Returns:
            Path the file was moved to, or None if there was nothing to move
        """
        if not self.path.exists():
            return None
        stamp = timezone.now().strftime("%Y%m%d%H%M%S")
        target = self.path.with_name(f"{self.path.name}.corrupt-{stamp}")
        try:
            os.replace(self.path, target)
        except OSError as e:
            logger.error(
                f"Failed to move unreadable data file aside: {e}",
                extra={"path": str(self.path)},
                exc_info=True,
            )
            return None
        logger.warning(
            "Moved unreadable data file aside",
            extra={"path": str(self.path), "moved_to": str(target)},
        )
        return target
