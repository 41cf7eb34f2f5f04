"""Tests for the external editor round trip."""

from contextlib import contextmanager, nullcontext
from pathlib import Path

import pytest
from textual.app import SuspendNotSupported

from kbase.database import get_document, update_document
from kbase.models.documents import DocumentType
from kbase.ui.edit_session import (
    EditKind,
    EditPhase,
    EditSession,
    EditStatus,
    format_label_file,
    parse_label_file,
    split_editor_command,
)


class FakeEditor:
    """Stands in for the user's editor: optionally rewrites the file, returns a code."""

    def __init__(self, new_text=None, returncode=0, during=None):
        self.new_text = new_text
        self.returncode = returncode
        self.during = during
        self.commands = []
        self.seen_text = None

    def __call__(self, command):
        self.commands.append(command)
        path = Path(command[-1])
        self.seen_text = path.read_text()
        if self.during is not None:
            self.during()
        if self.new_text is not None:
            path.write_text(self.new_text)
        return self.returncode


def make_session(db, editor, command="vi"):
    return EditSession(db, command, suspend=nullcontext, run_editor=editor)


class TestContentEdit:
    """Test editing page content."""

    def test_save_bumps_version_and_adds_audit_label(self, db, make_document):
        doc = make_document("Notes", content="old text")
        editor = FakeEditor("new text")

        outcome = make_session(db, editor).edit(doc.id)

        assert outcome.status == EditStatus.SAVED
        assert outcome.saved
        assert editor.seen_text == "old text"
        saved = get_document(db, doc.id)
        assert saved.content == "new text"
        assert saved.version == 2
        assert "human-edited" in saved.labels

    def test_unchanged_file_is_not_saved(self, db, make_document):
        doc = make_document(content="same")
        outcome = make_session(db, FakeEditor()).edit(doc.id)

        assert outcome.status == EditStatus.UNCHANGED
        assert outcome.messages == []
        current = get_document(db, doc.id)
        assert current.version == 1
        assert current.labels == []

    def test_nonzero_exit_discards_changes(self, db, make_document):
        doc = make_document(content="keep me")
        outcome = make_session(db, FakeEditor("ignored", returncode=1)).edit(doc.id)

        assert outcome.status == EditStatus.CANCELLED
        assert get_document(db, doc.id).content == "keep me"

    def test_conflict_leaves_concurrent_write(self, db, make_document):
        doc = make_document(content="v1")
        update_document(db, doc.id, content="v2")
        update_document(db, doc.id, content="v3")

        def concurrent_write():
            update_document(db, doc.id, content="agent wrote this")

        editor = FakeEditor("human wrote this", during=concurrent_write)
        outcome = make_session(db, editor).edit(doc.id)

        assert outcome.status == EditStatus.CONFLICT
        assert outcome.messages == [
            "Edit conflict: expected version 3, page is now version 4. Your changes were NOT saved.",
            "Re-select the page and try again.",
        ]
        current = get_document(db, doc.id)
        assert current.content == "agent wrote this"
        assert current.version == 4
        assert "human-edited" not in current.labels

    def test_existing_audit_label_is_kept_once(self, db, make_document):
        doc = make_document(content="a", labels=["human-edited"])
        make_session(db, FakeEditor("b")).edit(doc.id)
        assert get_document(db, doc.id).labels == ["human-edited"]

    def test_custom_audit_label(self, db, make_document):
        doc = make_document(content="a")
        session = EditSession(
            db, "vi", suspend=nullcontext, run_editor=FakeEditor("b"), audit_label="reviewed"
        )
        session.edit(doc.id)
        assert get_document(db, doc.id).labels == ["reviewed"]

    def test_sections_are_replaced_by_edited_content(self, db, make_document):
        doc = make_document("Runbook", DocumentType.RUNBOOK, sections={"steps": "1. go"})
        make_session(db, FakeEditor("## Steps\n1. go\n2. stop")).edit(doc.id)

        saved = get_document(db, doc.id)
        assert saved.content == "## Steps\n1. go\n2. stop"
        assert saved.sections is None


class TestLabelEdit:
    """Test editing labels through a scratch file."""

    def test_labels_are_replaced(self, db, make_document):
        doc = make_document("Tagged", labels=["old", "stale"])
        editor = FakeEditor("# comment\nold\n\n  fresh  \n")

        outcome = make_session(db, editor).edit(doc.id, EditKind.LABELS)

        assert outcome.status == EditStatus.SAVED
        assert editor.seen_text == format_label_file("Tagged", ["old", "stale"])
        current = get_document(db, doc.id)
        assert current.labels == ["fresh", "human-edited", "old"]
        assert current.version == 1

    def test_duplicate_labels_fail_without_change(self, db, make_document):
        doc = make_document("Tagged", labels=["keep"])
        outcome = make_session(db, FakeEditor("dup\ndup\n")).edit(doc.id, EditKind.LABELS)

        assert outcome.status == EditStatus.FAILED
        assert outcome.messages[0].startswith("Error saving labels:")
        assert get_document(db, doc.id).labels == ["keep"]

    def test_scratch_file_prefix(self, db, make_document):
        doc = make_document("Tagged")
        editor = FakeEditor()
        make_session(db, editor).edit(doc.id, EditKind.LABELS)
        assert Path(editor.commands[0][-1]).name.startswith("kbase-labels-")


class TestFailures:
    """Test launch failures and cleanup."""

    def test_launch_failure(self, db, make_document):
        doc = make_document(content="x")

        def missing_editor(command):
            raise FileNotFoundError(2, "No such file or directory", command[0])

        outcome = make_session(db, missing_editor, command="no-such-editor").edit(doc.id)

        assert outcome.status == EditStatus.FAILED
        assert outcome.messages[0].startswith("Failed to launch editor 'no-such-editor':")
        assert get_document(db, doc.id).version == 1

    def test_missing_document(self, db):
        editor = FakeEditor()
        session = make_session(db, editor)
        outcome = session.edit("nope")

        assert outcome.status == EditStatus.FAILED
        assert outcome.messages == ["Error: Page not found: nope"]
        assert editor.commands == []
        assert session.phase == EditPhase.IDLE

    def test_scratch_file_removed_on_every_path(self, db, make_document):
        doc = make_document(content="x")
        for editor in (FakeEditor("y"), FakeEditor(), FakeEditor("z", returncode=3)):
            make_session(db, editor).edit(doc.id)
            assert not Path(editor.commands[0][-1]).exists()

    def test_scratch_file_removed_when_editor_raises(self, db, make_document):
        doc = make_document(content="x")
        paths = []

        def exploding_editor(command):
            paths.append(Path(command[-1]))
            raise RuntimeError("boom")

        session = make_session(db, exploding_editor)
        with pytest.raises(RuntimeError):
            session.edit(doc.id)
        assert not paths[0].exists()
        assert session.phase == EditPhase.IDLE

    def test_terminal_cannot_be_suspended(self, db, make_document):
        doc = make_document(content="x")
        editor = FakeEditor("y")

        def unsupported_suspend():
            raise SuspendNotSupported("App.suspend is not supported in this environment.")

        session = EditSession(db, "vi", suspend=unsupported_suspend, run_editor=editor)
        pending = session.prepare(doc.id, EditKind.CONTENT)
        outcome = session.run(pending)

        assert outcome.status == EditStatus.FAILED
        assert outcome.messages == [
            "Cannot suspend the terminal to run the editor: "
            "App.suspend is not supported in this environment."
        ]
        assert editor.commands == []
        assert not pending.path.exists()
        assert session.phase == EditPhase.IDLE
        assert get_document(db, doc.id).version == 1


class TestPhases:
    """Test the session phase transitions."""

    def test_phases_in_order(self, db, make_document):
        doc = make_document(content="x")
        seen = []

        @contextmanager
        def recording_suspend():
            seen.append(session.phase)
            yield
            seen.append("resumed")

        session = EditSession(db, "vi", suspend=recording_suspend, run_editor=FakeEditor("y"))
        assert session.phase == EditPhase.IDLE

        pending = session.prepare(doc.id, EditKind.CONTENT)
        assert session.phase == EditPhase.PREPARED
        assert pending.version == 1
        assert pending.path.read_bytes() == b"x"

        session.run(pending)
        assert seen == [EditPhase.SUSPENDED, "resumed"]
        assert session.phase == EditPhase.IDLE

    def test_editor_command_gets_path_appended(self, db, make_document):
        doc = make_document(content="x")
        editor = FakeEditor()
        make_session(db, editor, command="code --wait").edit(doc.id)

        command = editor.commands[0]
        assert command[:2] == ["code", "--wait"]
        assert command[2].endswith(".md")


class TestHelpers:
    """Test label file and editor command helpers."""

    def test_parse_label_file(self):
        text = format_label_file("T", ["a", "b"]) + "\n# note\n  c \n"
        assert parse_label_file(text) == ["a", "b", "c"]

    def test_split_editor_command(self):
        assert split_editor_command("vim") == ["vim"]
        assert split_editor_command("code --wait") == ["code", "--wait"]
        assert split_editor_command("'/opt/my editor/bin' -n") == ["/opt/my editor/bin", "-n"]
