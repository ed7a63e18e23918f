"""Durable storage for the workflow status document.

StatusStore owns ``.context/workflow/status.yaml``. Every operation loads
the document, mutates an in-memory copy and writes it back once. Writes go
to a temporary file in the same directory and are moved into place with
``os.replace``, so an interrupted write leaves the previous document intact.

The in-process lock only serialises read-modify-write cycles within one
store; separate processes follow last-writer-wins.
"""

import logging
import os
import re
import shutil
import tempfile
import threading
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

import yaml
from pydantic import ValidationError

from prevc.config import ContextLayout
from prevc.workflow.errors import NoWorkflowError, PersistenceError
from prevc.workflow.initializer import migrate_legacy_document, needs_migration
from prevc.workflow.status_models import WorkflowStatus, utc_now

logger = logging.getLogger(__name__)


def archive_timestamp() -> str:
    """Filesystem-safe timestamp for archive directory names."""
    return re.sub(r"[:.]", "-", utc_now())


def sanitize_name(name: str) -> str:
    return re.sub(r"[^a-zA-Z0-9\-_]", "-", name)


def write_text_atomic(path: Path, content: str) -> None:
    """Replace ``path`` with ``content`` in a single rename."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(content)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


class StatusStore:
    """Reads and writes status.yaml for one repository.

    Args:
        layout: Context layout of the repository
    """

    def __init__(self, layout: ContextLayout) -> None:
        self.layout = layout
        self.status_file = layout.status_file
        self._lock = threading.RLock()

    def exists(self) -> bool:
        return self.status_file.exists()

    def load(self) -> WorkflowStatus:
        """Load and validate the status document.

        Legacy documents missing settings, approval or execution are
        migrated in memory; the migrated form is written on the next save.

        Returns:
            The parsed WorkflowStatus

        Raises:
            NoWorkflowError: If status.yaml does not exist
            PersistenceError: If the file is unreadable or fails validation
        """
        if not self.exists():
            raise NoWorkflowError()

        try:
            with open(self.status_file, encoding="utf-8") as f:
                data = yaml.safe_load(f)
        except (OSError, yaml.YAMLError) as e:
            raise PersistenceError(f"Could not read workflow status: {e}", str(self.status_file)) from e

        if not isinstance(data, dict):
            raise PersistenceError("Workflow status is not a mapping", str(self.status_file))

        try:
            if needs_migration(data):
                data = migrate_legacy_document(data)
            return WorkflowStatus.model_validate(data)
        except (ValidationError, ValueError) as e:
            raise PersistenceError(f"Workflow status is invalid: {e}", str(self.status_file)) from e

    def save(self, status: WorkflowStatus) -> None:
        """Validate and atomically write the status document."""
        # Re-validate so in-memory mutations cannot persist a broken document
        WorkflowStatus.model_validate(status.model_dump())
        content = yaml.dump(
            status.to_document(),
            default_flow_style=False,
            sort_keys=False,
            allow_unicode=True,
        )
        with self._lock:
            write_text_atomic(self.status_file, content)
        logger.debug(f"Saved workflow status to {self.status_file}")

    @contextmanager
    def update(self) -> Iterator[WorkflowStatus]:
        """Load, yield for mutation, then save once on normal exit.

        Example:
            with store.update() as status:
                status.settings.autonomous_mode = True
        """
        with self._lock:
            status = self.load()
            yield status
            self.save(status)

    def delete(self) -> None:
        """Remove status.yaml if present."""
        with self._lock:
            self.status_file.unlink(missing_ok=True)
        logger.info(f"Deleted workflow status {self.status_file}")

    def archive(self, name: str | None = None) -> Path | None:
        """Move status.yaml into ``workflow/archive/<name>-<timestamp>/``.

        Args:
            name: Archive name, defaulting to the workflow's project name

        Returns:
            The archive directory, or None when there was nothing to archive
        """
        with self._lock:
            if not self.exists():
                return None
            if name is None:
                try:
                    name = self.load().project.name
                except PersistenceError:
                    logger.warning(f"Archiving unreadable workflow status {self.status_file}")
                    name = "workflow"
            target_dir = self.layout.archive_dir / f"{sanitize_name(name)}-{archive_timestamp()}"
            target_dir.mkdir(parents=True, exist_ok=True)
            shutil.move(str(self.status_file), str(target_dir / self.status_file.name))
        logger.info(f"Archived workflow '{name}' to {target_dir}")
        return target_dir
