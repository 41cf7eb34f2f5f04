"""
Edit session controller for the document browser.

An edit runs through four phases:

    IDLE -> PREPARED -> SUSPENDED -> RECONCILED -> IDLE

PREPARED re-reads the document and writes a scratch file. SUSPENDED hands
the terminal to ``<editor> <path>`` and blocks until it exits. RECONCILED
takes the terminal back and saves the result under the version the file
was prepared from, so a write that happened while the editor was open is
reported as a conflict instead of being overwritten. The scratch file is
removed on every path.
"""

import logging
import os
import shlex
import subprocess
import tempfile
from contextlib import AbstractContextManager
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Callable, Optional

from textual.app import SuspendNotSupported

from ..config.constants import AUDIT_LABEL, SCRATCH_FILE_PREFIX
from ..database import DatabaseConnection, add_label, get_document, set_labels, update_document
from ..exceptions import EditSessionIOError, KbError, VersionConflictError

logger = logging.getLogger(__name__)

LABEL_FILE_HEADER = (
    "# Labels for: {title}\n"
    "# One label per line. Empty lines and lines starting with # are ignored.\n"
)


class EditPhase(Enum):
    IDLE = "idle"
    PREPARED = "prepared"
    SUSPENDED = "suspended"
    RECONCILED = "reconciled"


class EditKind(Enum):
    CONTENT = "content"
    LABELS = "labels"


class EditStatus(Enum):
    SAVED = "saved"
    UNCHANGED = "unchanged"
    CANCELLED = "cancelled"
    CONFLICT = "conflict"
    FAILED = "failed"


@dataclass
class PendingEdit:
    """A prepared scratch file and the version it was written from."""

    document_id: str
    path: Path
    version: int
    kind: EditKind
    original: bytes


@dataclass
class EditOutcome:
    status: EditStatus
    messages: list[str] = field(default_factory=list)

    @property
    def saved(self) -> bool:
        return self.status == EditStatus.SAVED


def format_label_file(title: str, labels: list[str]) -> str:
    return LABEL_FILE_HEADER.format(title=title) + "".join(f"{label}\n" for label in labels)


def parse_label_file(text: str) -> list[str]:
    """One label per line; blank lines and ``#`` comments are skipped."""
    labels = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            labels.append(line)
    return labels


def split_editor_command(editor: str) -> list[str]:
    """Split ``$EDITOR`` so values like ``code --wait`` work."""
    return shlex.split(editor) or [editor]


def run_editor(command: list[str]) -> int:
    """Run the editor in the foreground and return its exit code.

    Raises ``OSError`` if the editor cannot be started.
    """
    return subprocess.run(command).returncode


class EditSession:
    """Runs one external-editor round trip at a time.

    ``suspend`` is a context-manager factory that releases the terminal for
    the duration of the editor and takes it back afterwards (Textual's
    ``App.suspend`` in the browser). ``run_editor`` is injectable for tests.
    """

    def __init__(
        self,
        db: DatabaseConnection,
        editor: str,
        suspend: Callable[[], AbstractContextManager],
        run_editor: Callable[[list[str]], int] = run_editor,
        audit_label: str = AUDIT_LABEL,
    ):
        self.db = db
        self.editor = editor
        self.suspend = suspend
        self.run_editor = run_editor
        self.audit_label = audit_label
        self.phase = EditPhase.IDLE

    def _set_phase(self, phase: EditPhase) -> None:
        logger.debug(f"Edit session {self.phase.value} -> {phase.value}")
        self.phase = phase

    def prepare(self, document_id: str, kind: EditKind) -> PendingEdit:
        """Snapshot the document into a scratch file."""
        document = get_document(self.db, document_id)
        if kind == EditKind.CONTENT:
            text = document.content
            prefix = SCRATCH_FILE_PREFIX
        else:
            text = format_label_file(document.title, document.labels)
            prefix = f"{SCRATCH_FILE_PREFIX}labels-"
        data = text.encode("utf-8")

        try:
            with tempfile.NamedTemporaryFile(
                mode="wb", prefix=prefix, suffix=".md", delete=False
            ) as tmp:
                tmp.write(data)
                path = Path(tmp.name)
        except OSError as e:
            raise EditSessionIOError(f"Could not write scratch file: {e}") from e

        self._set_phase(EditPhase.PREPARED)
        return PendingEdit(document.id, path, document.version, kind, data)

    def run(self, pending: PendingEdit) -> EditOutcome:
        """Hand the scratch file to the editor and reconcile the result."""
        command = split_editor_command(self.editor) + [str(pending.path)]
        try:
            self._set_phase(EditPhase.SUSPENDED)
            launch_error: Optional[OSError] = None
            try:
                with self.suspend():
                    try:
                        returncode = self.run_editor(command)
                    except OSError as e:
                        launch_error = e
            except SuspendNotSupported as e:
                logger.error(f"Cannot suspend the terminal for the editor: {e}")
                return EditOutcome(
                    EditStatus.FAILED,
                    [f"Cannot suspend the terminal to run the editor: {e}"],
                )
            self._set_phase(EditPhase.RECONCILED)

            if launch_error is not None:
                logger.error(f"Failed to launch editor {self.editor!r}: {launch_error}")
                return EditOutcome(
                    EditStatus.FAILED,
                    [f"Failed to launch editor '{self.editor}': {launch_error}"],
                )
            if returncode != 0:
                logger.info(f"Editor exited with {returncode}; discarding changes")
                return EditOutcome(EditStatus.CANCELLED)

            try:
                edited = pending.path.read_bytes()
            except OSError as e:
                return EditOutcome(EditStatus.FAILED, [f"Error reading edited file: {e}"])
            if edited == pending.original:
                return EditOutcome(EditStatus.UNCHANGED)

            try:
                text = edited.decode("utf-8")
            except UnicodeDecodeError as e:
                return EditOutcome(EditStatus.FAILED, [f"Error saving: edited file is not UTF-8 ({e})"])

            if pending.kind == EditKind.CONTENT:
                return self._save_content(pending, text)
            return self._save_labels(pending, text)
        finally:
            self._cleanup(pending.path)
            self._set_phase(EditPhase.IDLE)

    def edit(self, document_id: str, kind: EditKind = EditKind.CONTENT) -> EditOutcome:
        """Prepare, run and reconcile in one call."""
        try:
            pending = self.prepare(document_id, kind)
        except KbError as e:
            self._set_phase(EditPhase.IDLE)
            return EditOutcome(EditStatus.FAILED, [f"Error: {e}"])
        return self.run(pending)

    def _save_content(self, pending: PendingEdit, text: str) -> EditOutcome:
        try:
            update_document(
                self.db, pending.document_id, content=text, expected_version=pending.version
            )
        except VersionConflictError as e:
            return EditOutcome(
                EditStatus.CONFLICT,
                [
                    f"Edit conflict: expected version {e.expected}, page is now version "
                    f"{e.actual}. Your changes were NOT saved.",
                    "Re-select the page and try again.",
                ],
            )
        except KbError as e:
            return EditOutcome(EditStatus.FAILED, [f"Error saving: {e}"])

        self._add_audit_label(pending.document_id)
        logger.info(f"Saved edit to {pending.document_id} over version {pending.version}")
        return EditOutcome(EditStatus.SAVED)

    def _save_labels(self, pending: PendingEdit, text: str) -> EditOutcome:
        try:
            set_labels(self.db, pending.document_id, parse_label_file(text))
        except KbError as e:
            return EditOutcome(EditStatus.FAILED, [f"Error saving labels: {e}"])

        self._add_audit_label(pending.document_id)
        logger.info(f"Saved labels for {pending.document_id}")
        return EditOutcome(EditStatus.SAVED)

    def _add_audit_label(self, document_id: str) -> None:
        try:
            add_label(self.db, document_id, self.audit_label)
        except KbError as e:
            logger.warning(f"Could not add '{self.audit_label}' to {document_id}: {e}")

    @staticmethod
    def _cleanup(path: Path) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as e:
            logger.warning(f"Could not remove scratch file {path}: {e}")
