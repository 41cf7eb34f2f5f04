"""CLI tests driven through typer's CliRunner against a temporary database."""

import json

import pytest
from typer.testing import CliRunner

from kbase import __version__
from kbase.database import get_document
from kbase.main import app

runner = CliRunner()


def kb(*args, input=None):
    return runner.invoke(app, ["--user", "alice", "--agent", "cli", *args], input=input)


def kb_json(*args, input=None):
    result = kb(*args, "--json", input=input)
    assert result.exit_code == 0, result.output
    return json.loads(result.stdout)


@pytest.fixture
def cli_space(db_path):
    return kb_json("space", "create", "eng", "Engineering", "-d", "Engineering notes")


@pytest.fixture
def cli_page(cli_space):
    return kb_json("page", "create", "Use WAL", "--space", "eng", "--content", "Readers never block")


class TestBasics:
    """Test help and version."""

    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "Usage:" in result.stdout

    def test_version(self):
        result = runner.invoke(app, ["version"])
        assert result.exit_code == 0
        assert f"kbase version {__version__}" in result.stdout

    def test_subcommand_help(self):
        for group in ("space", "page", "link"):
            result = runner.invoke(app, [group, "--help"])
            assert result.exit_code == 0


class TestSpaceCommands:
    """Test kb space."""

    def test_create_and_get(self, cli_space):
        assert cli_space["slug"] == "eng"
        fetched = kb_json("space", "get", "eng")
        assert fetched == cli_space

    def test_list(self, cli_space):
        kb("space", "create", "ops", "Operations")
        spaces = kb_json("space", "list")
        assert {s["slug"] for s in spaces} == {"eng", "ops"}

        result = kb("space", "list")
        assert result.exit_code == 0
        assert "Operations" in result.stdout

    def test_duplicate_slug(self, cli_space):
        result = kb("space", "create", "eng", "Again")
        assert result.exit_code == 1
        assert "Space slug already exists: eng" in result.output

    def test_delete(self, cli_space):
        result = kb("space", "delete", "eng")
        assert result.exit_code == 0
        assert kb("space", "get", "eng").exit_code == 1

    def test_delete_nonempty_space_fails(self, cli_page):
        result = kb("space", "delete", "eng")
        assert result.exit_code == 1
        assert "still has pages" in result.output

    def test_missing_space(self, db_path):
        result = kb("space", "get", "nope")
        assert result.exit_code == 1
        assert "Space not found: nope" in result.output


class TestPageCommands:
    """Test kb page."""

    def test_create_records_author(self, cli_page):
        assert cli_page["version"] == 1
        assert cli_page["content"] == "Readers never block"
        assert cli_page["created_by_user"] == "alice"
        assert cli_page["created_by_agent"] == "cli"

    def test_create_with_sections_and_labels(self, cli_space):
        sections = json.dumps(
            {"context": "Locks", "options_considered": "WAL, rollback journal", "decision": "WAL"}
        )
        page = kb_json(
            "page", "create", "Storage", "-s", "eng", "-t", "decision",
            "--sections", sections, "-l", "db", "-l", "arch",
        )
        assert page["type"] == "decision"
        assert page["sections"]["options_considered"] == "WAL, rollback journal"
        assert page["content"] == (
            "## Context\nLocks\n\n## Options Considered\nWAL, rollback journal\n\n## Decision\nWAL"
        )
        assert page["labels"] == ["arch", "db"]

    def test_create_reads_piped_content(self, cli_space):
        page = kb_json("page", "create", "Piped", "-s", "eng", input="from stdin")
        assert page["content"] == "from stdin"

    def test_invalid_sections_json(self, cli_space):
        result = kb("page", "create", "Bad", "-s", "eng", "--sections", "{not json")
        assert result.exit_code == 1
        assert "Sections are not valid JSON" in result.output

    def test_get(self, cli_page):
        assert kb_json("page", "get", cli_page["id"]) == cli_page

        result = kb("page", "get", cli_page["id"])
        assert result.exit_code == 0
        assert "Use WAL" in result.stdout

    def test_get_missing(self, db_path):
        result = kb("page", "get", "nope")
        assert result.exit_code == 1
        assert "Page not found: nope" in result.output

    def test_update_with_expected_version(self, cli_page):
        updated = kb_json("page", "update", cli_page["id"], "-c", "v2", "-V", "1")
        assert updated["version"] == 2
        assert updated["content"] == "v2"

    def test_stale_update_is_rejected(self, db, cli_page):
        kb("page", "update", cli_page["id"], "-c", "first", "-V", "1")
        result = kb("page", "update", cli_page["id"], "-c", "second", "-V", "1")

        assert result.exit_code == 1
        assert "expected 1, but current version is 2" in result.output
        assert get_document(db, cli_page["id"]).content == "first"

    def test_append(self, cli_page):
        page = kb_json("page", "append", cli_page["id"], "more")
        assert page["content"] == "Readers never block\nmore"
        assert page["version"] == 2

        page = kb_json("page", "append", cli_page["id"], input="piped")
        assert page["content"].endswith("\nmore\npiped")

    def test_append_nothing(self, cli_page):
        result = kb("page", "append", cli_page["id"])
        assert result.exit_code == 1
        assert "Nothing to append" in result.output

    def test_list_filters(self, cli_page):
        kb("page", "create", "Runbook", "-s", "eng", "-t", "runbook", "-l", "ops")

        assert len(kb_json("page", "list")) == 2
        assert [p["title"] for p in kb_json("page", "list", "-t", "runbook")] == ["Runbook"]
        assert [p["title"] for p in kb_json("page", "list", "-l", "ops")] == ["Runbook"]
        assert len(kb_json("page", "list", "--agent", "cli")) == 2
        assert kb_json("page", "list", "--user", "bob") == []

    def test_delete(self, db, cli_page):
        result = kb("page", "delete", cli_page["id"])
        assert result.exit_code == 0
        assert kb("page", "get", cli_page["id"]).exit_code == 1

    def test_schema(self):
        schema = kb_json("page", "schema", "runbook")
        assert schema["type"] == "runbook"
        assert [s["key"] for s in schema["sections"] if s["required"]] == ["steps"]

        freeform = kb_json("page", "schema", "reference")
        assert freeform["sections"] == []


class TestLabelCommands:
    """Test kb page label."""

    def test_add_remove_set(self, cli_page):
        doc_id = cli_page["id"]
        assert kb("page", "label", "add", doc_id, "b", "a").exit_code == 0
        assert kb_json("page", "label", "list", doc_id) == ["a", "b"]

        assert kb("page", "label", "remove", doc_id, "a").exit_code == 0
        assert kb_json("page", "label", "list", doc_id) == ["b"]

        assert kb("page", "label", "set", doc_id, "x", "y").exit_code == 0
        assert kb_json("page", "label", "list", doc_id) == ["x", "y"]

        assert kb_json("page", "get", doc_id)["version"] == 1

    def test_remove_missing_label_warns(self, cli_page):
        result = kb("page", "label", "remove", cli_page["id"], "ghost")
        assert result.exit_code == 0
        assert "has no label 'ghost'" in result.output

    def test_set_duplicates_fails(self, cli_page):
        kb("page", "label", "set", cli_page["id"], "keep")
        result = kb("page", "label", "set", cli_page["id"], "dup", "dup")
        assert result.exit_code == 1
        assert kb_json("page", "label", "list", cli_page["id"]) == ["keep"]


class TestLinkCommands:
    """Test kb link."""

    def test_create_list_delete(self, cli_page):
        other = kb_json("page", "create", "Old decision", "-s", "eng")
        link = kb_json("link", "create", cli_page["id"], other["id"], "-r", "supersedes")
        assert link["relation"] == "supersedes"

        from_source = kb_json("link", "list", cli_page["id"])
        from_target = kb_json("link", "list", other["id"])
        assert from_source == from_target == [link]

        assert kb("link", "delete", cli_page["id"], other["id"]).exit_code == 0
        assert kb_json("link", "list", cli_page["id"]) == []

    def test_self_link_rejected(self, cli_page):
        result = kb("link", "create", cli_page["id"], cli_page["id"])
        assert result.exit_code == 1

    def test_delete_missing_link(self, cli_page):
        result = kb("link", "delete", cli_page["id"], "nope")
        assert result.exit_code == 1
        assert "Link not found" in result.output


class TestSearchCommand:
    """Test kb search."""

    def test_text_search(self, cli_page):
        kb("page", "create", "Unrelated", "-s", "eng", "-c", "nothing to see")
        results = kb_json("search", "readers")
        assert [r["title"] for r in results] == ["Use WAL"]
        assert "Readers never block" in results[0]["excerpt"]

    def test_no_results(self, cli_page):
        assert kb_json("search", "zebra") == []
        result = kb("search", "zebra")
        assert result.exit_code == 0
        assert "No results found" in result.stdout

    def test_filter_only(self, cli_page):
        kb("page", "create", "Runbook", "-s", "eng", "-t", "runbook")
        results = kb_json("search", "--type", "runbook")
        assert [r["title"] for r in results] == ["Runbook"]

    def test_section_filter(self, cli_space):
        kb(
            "page", "create", "Outage", "-s", "eng", "-t", "troubleshooting",
            "--sections", json.dumps({"problem": "disk full", "solution": "rotate logs"}),
        )
        kb("page", "create", "Other", "-s", "eng", "-c", "rotate logs weekly")

        results = kb_json("search", "rotate", "--section", "solution")
        assert [r["title"] for r in results] == ["Outage"]
        assert results[0]["excerpt"] == "rotate logs"

    def test_unknown_space_filter(self, db_path):
        result = kb("search", "x", "--space", "nope")
        assert result.exit_code == 1
