"""
Textual front end for the knowledge base browser.

The app is a thin adapter: keys go through ``keybindings.dispatch_key`` into
``BrowserState`` and the panes are redrawn from that state after every key
and every idle refresh.
"""

import logging
from typing import Callable, Optional

from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.containers import Horizontal
from textual.widgets import Static

from ..config.constants import INPUT_POLL_SECONDS
from ..config.settings import get_editor, get_refresh_interval, load_config
from ..database import DatabaseConnection
from ..exceptions import KbError
from ..utils.logging_utils import setup_tui_logging
from .browser_state import BrowserState, Focus, IdleRefresher, Mode
from .edit_session import EditKind, EditSession, run_editor
from .keybindings import EDIT_ACTIONS, Action, dispatch_key
from .terminal import TerminalGuard

logger = logging.getLogger(__name__)


class KnowledgeBrowser(App):
    """Two-pane browser over spaces, pages and search results."""

    CSS = """
    #list-pane {
        width: 30%;
        height: 100%;
        border: round $panel;
        padding: 0 1;
    }

    #content-pane {
        width: 70%;
        height: 100%;
        border: round $panel;
        padding: 0 1;
    }

    #list-pane.focused, #content-pane.focused {
        border: round $accent;
    }

    #status {
        dock: bottom;
        height: 1;
        padding: 0 1;
        background: $surface;
    }
    """

    BINDINGS = [
        Binding("ctrl+c", "quit", "Quit", show=False, priority=True),
    ]

    def __init__(
        self,
        db: DatabaseConnection,
        editor: Optional[str] = None,
        refresh_interval: Optional[float] = None,
        run_editor: Callable[[list[str]], int] = run_editor,
    ):
        super().__init__()
        config = load_config() if editor is None or refresh_interval is None else {}
        self.db = db
        self.state = BrowserState(db)
        self.session = EditSession(
            db, editor or get_editor(config), suspend=self.suspend, run_editor=run_editor
        )
        self.refresher = IdleRefresher(
            refresh_interval if refresh_interval is not None else get_refresh_interval(config)
        )

    def compose(self) -> ComposeResult:
        with Horizontal():
            yield Static(id="list-pane")
            yield Static(id="content-pane")
        yield Static("", id="status")

    def on_mount(self) -> None:
        try:
            self.state.load_initial()
        except KbError as e:
            logger.error(f"Could not load spaces: {e}")
            self.exit(message=f"Error loading knowledge base: {e}")
            return
        self.render_state()
        self.set_interval(INPUT_POLL_SECONDS, self._idle_tick)

    @property
    def content_height(self) -> int:
        return max(self.query_one("#content-pane", Static).content_size.height, 1)

    def on_key(self, event: events.Key) -> None:
        event.stop()
        event.prevent_default()
        key = event.character if event.is_printable and event.character else event.key

        try:
            action = dispatch_key(self.state, key, self.content_height)
            if action in EDIT_ACTIONS:
                self._run_edit(action)
        except KbError as e:
            logger.error(f"Ending session after storage error: {e}")
            self.exit(message=f"Error: {e}")
            return
        finally:
            self.refresher.note_activity()

        if not self.state.running:
            self.exit()
            return
        self.render_state()

    def _run_edit(self, action: Action) -> None:
        document_id = self.state.selected_document_id
        if document_id is None:
            return

        kind = EditKind.CONTENT if action == Action.EDIT else EditKind.LABELS
        outcome = self.session.edit(document_id, kind)
        logger.info(f"Edit of {document_id} ({kind.value}) finished: {outcome.status.value}")
        if outcome.saved:
            self.state.load_items()
        elif outcome.messages:
            self.state.show_message(outcome.messages)
        self.refresh(layout=True)

    def _idle_tick(self) -> None:
        if not self.refresher.due():
            return
        try:
            self.state.refresh()
        except KbError as e:
            logger.error(f"Ending session after storage error during refresh: {e}")
            self.exit(message=f"Error: {e}")
            return
        self.refresher.note_activity()
        self.render_state()

    def render_state(self) -> None:
        state = self.state
        list_pane = self.query_one("#list-pane", Static)
        content_pane = self.query_one("#content-pane", Static)

        list_pane.border_title = state.left_pane_title()
        list_pane.set_class(state.focus == Focus.LIST, "focused")
        content_pane.set_class(state.focus == Focus.CONTENT, "focused")

        height = max(list_pane.content_size.height, 1)
        offset = max(state.cursor - height + 1, 0)
        rows = Text()
        for index, item in enumerate(state.items[offset : offset + height], start=offset):
            if index > offset:
                rows.append("\n")
            if index == state.cursor:
                style = "reverse" if state.focus == Focus.LIST else "bold"
                rows.append(item.display_text, style=style)
            else:
                rows.append(item.display_text)
        list_pane.update(rows)

        visible = state.content_lines[state.content_scroll : state.content_scroll + self.content_height]
        content_pane.update(Text("\n".join(visible)))

        status = self.query_one("#status", Static)
        if state.mode == Mode.SEARCH:
            status.update(Text(f"/{state.search_input}"))
        else:
            status.update(Text(state.status_hint(), style="dim"))


def run_browser(db: DatabaseConnection, editor: Optional[str] = None) -> None:
    """Run the browser with logging sent to a file and the terminal guarded."""
    setup_tui_logging()
    app = KnowledgeBrowser(db, editor=editor)
    with TerminalGuard():
        app.run()
