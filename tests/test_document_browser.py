"""Pilot-based tests for the KnowledgeBrowser app."""

from contextlib import nullcontext
from pathlib import Path

import pytest
from textual.widgets import Static

from kbase.database import create_space, get_document
from kbase.ui.browser_state import Focus, Mode, PageListView, SearchResultsView, SpaceListView
from kbase.ui.document_browser import KnowledgeBrowser


def make_app(db, run_editor=None, refresh_interval=60):
    kwargs = {"run_editor": run_editor} if run_editor is not None else {}
    app = KnowledgeBrowser(db, editor="true", refresh_interval=refresh_interval, **kwargs)
    app.session.suspend = nullcontext
    return app


class TestNavigation:
    """Drive the browser with key presses."""

    @pytest.mark.asyncio
    async def test_starts_on_space_list(self, db, space):
        app = make_app(db)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.state.view == SpaceListView()
            assert len(app.state.items) == 1
            assert app.query_one("#list-pane", Static).border_title == "Spaces"

    @pytest.mark.asyncio
    async def test_enter_and_escape(self, db, space, make_document):
        make_document("Hello", content="world")
        app = make_app(db)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            assert app.state.view == PageListView(space)
            assert app.query_one("#list-pane", Static).border_title == "eng / Pages"

            await pilot.press("l")
            await pilot.pause()
            assert app.state.focus == Focus.CONTENT

            await pilot.press("escape", "escape")
            await pilot.pause()
            assert app.state.focus == Focus.LIST
            assert app.state.view == SpaceListView()

    @pytest.mark.asyncio
    async def test_search_flow(self, db, space, make_document):
        make_document("Hello", content="world")
        make_document("Other", content="nothing here")
        app = make_app(db)
        async with app.run_test() as pilot:
            await pilot.press("slash")
            await pilot.pause()
            assert app.state.mode == Mode.SEARCH

            await pilot.press("w", "o", "r", "l", "d", "enter")
            await pilot.pause()
            assert app.state.mode == Mode.NORMAL
            assert isinstance(app.state.view, SearchResultsView)
            assert [item.result.document.title for item in app.state.items] == ["Hello"]

    @pytest.mark.asyncio
    async def test_q_quits(self, db, space):
        app = make_app(db)
        async with app.run_test() as pilot:
            await pilot.press("q")
            await pilot.pause()
        assert app.state.running is False

    @pytest.mark.asyncio
    async def test_idle_refresh_picks_up_new_spaces(self, db, space):
        app = make_app(db, refresh_interval=0)
        async with app.run_test() as pilot:
            await pilot.pause()
            assert len(app.state.items) == 1

            create_space(db, "ops", "Operations")
            await pilot.pause(0.5)
            assert len(app.state.items) == 2


class TestEditing:
    """Run the edit flow with a stand-in editor."""

    @pytest.mark.asyncio
    async def test_edit_saves_and_reloads(self, db, space, make_document):
        doc = make_document("Hello", content="world")

        def editor(command):
            Path(command[-1]).write_text("edited in the browser")
            return 0

        app = make_app(db, run_editor=editor)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("e")
            await pilot.pause()

            saved = get_document(db, doc.id)
            assert saved.content == "edited in the browser"
            assert saved.version == 2
            assert "human-edited" in saved.labels
            assert "Version: 2" in app.state.content_lines

    @pytest.mark.asyncio
    async def test_failed_edit_shows_message(self, db, space, make_document):
        make_document("Hello", content="world")

        def broken_editor(command):
            raise FileNotFoundError(2, "No such file or directory", command[0])

        app = make_app(db, run_editor=broken_editor)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("e")
            await pilot.pause()

            assert app.state.content_lines[0].startswith("Failed to launch editor 'true':")
            assert app.state.running is True

    @pytest.mark.asyncio
    async def test_edit_on_space_list_does_nothing(self, db, space):
        calls = []

        def editor(command):
            calls.append(command)
            return 0

        app = make_app(db, run_editor=editor)
        async with app.run_test() as pilot:
            await pilot.press("e")
            await pilot.pause()
        assert calls == []

    @pytest.mark.asyncio
    async def test_edit_without_terminal_handover_shows_message(self, db, space, make_document):
        doc = make_document("Hello", content="world")
        calls = []

        def editor(command):
            calls.append(command)
            return 0

        app = KnowledgeBrowser(db, editor="true", refresh_interval=60, run_editor=editor)
        async with app.run_test() as pilot:
            await pilot.press("enter")
            await pilot.pause()
            await pilot.press("e")
            await pilot.pause()

            assert app.state.content_lines[0].startswith(
                "Cannot suspend the terminal to run the editor:"
            )
            assert app.state.running is True
            assert calls == []
            assert get_document(db, doc.id).version == 1

            await pilot.press("j")
            await pilot.pause()
            assert app.state.content_lines[0] == "Title:   Hello"
