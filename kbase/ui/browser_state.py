"""
Browser state management for kbase.

``BrowserState`` is the navigation state machine behind the terminal
browser: which view the left pane shows, the cursor, which pane has focus
and whether the search line is taking input. It talks to the store but
knows nothing about Textual, so it can be driven directly in tests.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Union

from ..database import (
    DatabaseConnection,
    get_document,
    has_children,
    list_child_documents,
    list_links,
    list_spaces,
    list_top_level_documents,
    search_documents,
)
from ..exceptions import NotFoundError
from ..models.documents import Document, SearchResult, ordered_section_keys
from ..models.types import Space

logger = logging.getLogger(__name__)

SearchFn = Callable[[DatabaseConnection, str], list[SearchResult]]


class Focus(Enum):
    LIST = "list"
    CONTENT = "content"


class Mode(Enum):
    NORMAL = "normal"
    SEARCH = "search"


# Views: what the left pane is showing


@dataclass(frozen=True)
class SpaceListView:
    pass


@dataclass(frozen=True)
class PageListView:
    space: Space


@dataclass(frozen=True)
class ChildPageListView:
    space: Space
    parent: Document


@dataclass(frozen=True)
class SearchResultsView:
    query: str
    previous: View


View = Union[SpaceListView, PageListView, ChildPageListView, SearchResultsView]


# List items: one row of the left pane


@dataclass(frozen=True)
class SpaceItem:
    space: Space

    @property
    def display_text(self) -> str:
        return f"{self.space.name} ({self.space.slug})"


@dataclass(frozen=True)
class DocumentItem:
    document: Document
    expandable: bool

    @property
    def display_text(self) -> str:
        prefix = "[+] " if self.expandable else "    "
        return f"{prefix}{self.document.title}"


@dataclass(frozen=True)
class SearchResultItem:
    result: SearchResult

    @property
    def display_text(self) -> str:
        document = self.result.document
        return f"{document.title} [{document.doc_type}]"


ListItem = Union[SpaceItem, DocumentItem, SearchResultItem]


def item_document(item: ListItem) -> Optional[Document]:
    """The document behind a list item, or None for a space."""
    if isinstance(item, DocumentItem):
        return item.document
    if isinstance(item, SearchResultItem):
        return item.result.document
    return None


def _default_search(db: DatabaseConnection, query: str) -> list[SearchResult]:
    return search_documents(db, query)


class BrowserState:
    """Navigation state for the document browser.

    Every view change re-queries the store, clamps the cursor and rebuilds
    the content pane. Store errors propagate to the caller.
    """

    def __init__(self, db: DatabaseConnection, search_fn: Optional[SearchFn] = None):
        self.db = db
        self.search_fn: SearchFn = search_fn or _default_search

        self.running = True
        self.focus = Focus.LIST
        self.mode = Mode.NORMAL
        self.view: View = SpaceListView()
        self.items: list[ListItem] = []
        self.cursor = 0
        self.content_scroll = 0
        self.search_input = ""
        self.content_lines: list[str] = []
        self.pending_g = False
        # Shown in place of the content pane until the next key press
        self.pinned_message: Optional[list[str]] = None

    # === Loading ===

    def load_initial(self) -> None:
        self.view = SpaceListView()
        self.load_items()

    def load_items(self) -> None:
        """Re-run the current view's query and rebuild the content pane."""
        view = self.view
        if isinstance(view, SpaceListView):
            self.items = [SpaceItem(space) for space in list_spaces(self.db)]
        elif isinstance(view, PageListView):
            self.items = self._document_items(list_top_level_documents(self.db, view.space.id))
        elif isinstance(view, ChildPageListView):
            self.items = self._document_items(list_child_documents(self.db, view.parent.id))
        else:
            self.items = [SearchResultItem(r) for r in self.search_fn(self.db, view.query)]

        if not self.items:
            self.cursor = 0
        elif self.cursor >= len(self.items):
            self.cursor = len(self.items) - 1

        self.content_scroll = 0
        self.update_content()

    def _document_items(self, documents: list[Document]) -> list[ListItem]:
        return [DocumentItem(doc, has_children(self.db, doc.id)) for doc in documents]

    def refresh(self) -> None:
        """Pick up external changes, keeping cursor and approximate scroll."""
        scroll = self.content_scroll
        self.load_items()
        if self.pinned_message is not None:
            self.content_lines = list(self.pinned_message)
        self.content_scroll = min(scroll, max(len(self.content_lines) - 1, 0))

    # === Content pane ===

    @property
    def selected_item(self) -> Optional[ListItem]:
        if not self.items:
            return None
        return self.items[self.cursor]

    @property
    def selected_document_id(self) -> Optional[str]:
        item = self.selected_item
        document = item_document(item) if item is not None else None
        return document.id if document is not None else None

    def update_content(self) -> None:
        self.content_lines = []
        self.content_scroll = 0

        item = self.selected_item
        if item is None:
            self.content_lines.append("(empty)")
            return

        if isinstance(item, SpaceItem):
            self._build_space_content(item.space)
        elif isinstance(item, DocumentItem):
            self._build_document_content(item.document)
        else:
            self._build_document_content(item.result.document)
            if item.result.excerpt:
                self.content_lines.extend(["", "--- Match ---", item.result.excerpt])

    def _build_space_content(self, space: Space) -> None:
        self.content_lines.extend(
            [
                f"Space:   {space.name}",
                f"Slug:    {space.slug}",
                f"ID:      {space.id}",
                f"Created: {space.created_at}",
                f"Updated: {space.updated_at}",
            ]
        )
        if space.description:
            self.content_lines.extend(["", space.description])

    def _build_document_content(self, doc: Document) -> None:
        lines = self.content_lines
        lines.append(f"Title:   {doc.title}")
        lines.append(f"Type:    {doc.doc_type}")
        lines.append(f"ID:      {doc.id}")
        if doc.labels:
            lines.append(f"Labels:  {', '.join(doc.labels)}")
        lines.append(f"Author:  {doc.created_by.user} / {doc.created_by.agent}")
        lines.append(f"Created: {doc.created_at}")
        lines.append(f"Updated: {doc.updated_at}")
        lines.append(f"Version: {doc.version}")
        lines.append("")

        if doc.sections is not None:
            first = True
            for key, heading in ordered_section_keys(doc.sections, doc.doc_type):
                text = doc.sections[key]
                if not isinstance(text, str):
                    continue
                if not first:
                    lines.append("")
                first = False
                lines.append(f"--- {heading} ---")
                lines.extend(text.splitlines())
        else:
            lines.extend(doc.content.splitlines())

        try:
            links = list_links(self.db, doc.id)
        except NotFoundError:
            # Deleted by another writer since the list was loaded
            links = []
        if links:
            lines.extend(["", "--- Links ---"])
            for link in links:
                if link.source_id == doc.id:
                    lines.append(f"  {link.relation} -> {link.target_id}")
                else:
                    lines.append(f"  {link.relation} <- {link.source_id}")

    def show_message(self, lines: list[str]) -> None:
        """Replace the content pane with a message that survives idle refresh."""
        self.pinned_message = list(lines)
        self.content_lines = list(lines)
        self.content_scroll = 0

    def clear_message(self) -> None:
        if self.pinned_message is None:
            return
        self.pinned_message = None
        self.update_content()

    # === Cursor and scrolling ===

    def move_cursor_down(self) -> None:
        if self.items and self.cursor < len(self.items) - 1:
            self.cursor += 1

    def move_cursor_up(self) -> None:
        if self.cursor > 0:
            self.cursor -= 1

    def jump_to_top(self) -> None:
        self.cursor = 0

    def jump_to_bottom(self) -> None:
        if self.items:
            self.cursor = len(self.items) - 1

    def scroll_content_down(self) -> None:
        self.content_scroll += 1

    def scroll_content_up(self) -> None:
        self.content_scroll = max(self.content_scroll - 1, 0)

    def scroll_content_to_top(self) -> None:
        self.content_scroll = 0

    def scroll_content_to_bottom(self, visible_height: int) -> None:
        total = len(self.content_lines)
        if total > visible_height:
            self.content_scroll = total - visible_height

    # === Navigation ===

    def _current_space(self) -> Optional[Space]:
        if isinstance(self.view, (PageListView, ChildPageListView)):
            return self.view.space
        return None

    def _navigate(self, view: View) -> None:
        self.view = view
        self.cursor = 0
        self.load_items()

    def select(self) -> bool:
        """Drill into the selected item. Returns True if anything changed."""
        item = self.selected_item
        if item is None:
            return False

        if isinstance(item, SpaceItem):
            self._navigate(PageListView(item.space))
            return True

        if isinstance(item, DocumentItem) and item.expandable:
            space = self._current_space()
            if space is not None:
                self._navigate(ChildPageListView(space, item.document))
                return True

        self.focus = Focus.CONTENT
        return True

    def go_back(self) -> None:
        view = self.view
        if isinstance(view, SpaceListView):
            self.running = False
        elif isinstance(view, PageListView):
            self._navigate(SpaceListView())
        elif isinstance(view, ChildPageListView):
            grandparent = None
            if view.parent.parent_id is not None:
                try:
                    grandparent = get_document(self.db, view.parent.parent_id)
                except NotFoundError:
                    logger.info(f"Page {view.parent.parent_id} is gone; returning to the page list")
            if grandparent is not None:
                self._navigate(ChildPageListView(view.space, grandparent))
            else:
                self._navigate(PageListView(view.space))
        else:
            self._navigate(view.previous)

    def focus_content(self) -> None:
        if self.items:
            self.focus = Focus.CONTENT

    def focus_list(self) -> None:
        self.focus = Focus.LIST

    # === Search ===

    def enter_search(self) -> None:
        self.mode = Mode.SEARCH
        self.search_input = ""

    def submit_search(self) -> None:
        self.mode = Mode.NORMAL
        query = self.search_input.strip()
        if not query:
            return
        self.focus = Focus.LIST
        self._navigate(SearchResultsView(query, self.view))

    def cancel_search(self) -> None:
        self.mode = Mode.NORMAL
        self.search_input = ""

    # === Labels for the chrome ===

    def left_pane_title(self) -> str:
        view = self.view
        if isinstance(view, SpaceListView):
            return "Spaces"
        if isinstance(view, PageListView):
            return f"{view.space.slug} / Pages"
        if isinstance(view, ChildPageListView):
            return f"{view.space.slug} / {view.parent.title}"
        return f"Search: {view.query}"

    def status_hint(self) -> str:
        if self.mode == Mode.SEARCH:
            return "Type query, Enter:submit, Esc:cancel"
        if self.focus == Focus.LIST:
            return "j/k:nav  Enter:select  e:edit  L:labels  Esc:back  /:search  q:quit"
        return "j/k:scroll  e:edit  L:labels  h/Esc:back  /:search  q:quit"


class IdleRefresher:
    """Decides when the browser has been idle long enough to re-query."""

    def __init__(self, interval: float, clock: Callable[[], float] = time.monotonic):
        self.interval = interval
        self.clock = clock
        self.last_activity = clock()

    def note_activity(self) -> None:
        self.last_activity = self.clock()

    def due(self) -> bool:
        return self.clock() - self.last_activity >= self.interval
