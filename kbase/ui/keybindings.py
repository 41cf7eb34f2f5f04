"""Key handling for the document browser.

Keys arrive as strings: the typed character for printable keys (``"j"``,
``"G"``, ``"/"``) and Textual key names otherwise (``"enter"``,
``"escape"``, ``"down"``, ``"ctrl+c"``). ``map_key`` turns a key into an
``Action`` for the current mode and focus; ``apply_action`` performs it on
a ``BrowserState``. Edits are returned to the caller, which owns the
terminal.
"""

import logging
from enum import Enum, auto

from .browser_state import BrowserState, Focus, Mode

logger = logging.getLogger(__name__)


class Action(Enum):
    QUIT = auto()
    MOVE_DOWN = auto()
    MOVE_UP = auto()
    SELECT = auto()
    GO_BACK = auto()
    FOCUS_CONTENT = auto()
    FOCUS_LIST = auto()
    JUMP_TO_TOP = auto()
    JUMP_TO_BOTTOM = auto()
    ENTER_SEARCH = auto()
    SUBMIT_SEARCH = auto()
    CANCEL_SEARCH = auto()
    SEARCH_INPUT = auto()
    SEARCH_BACKSPACE = auto()
    EDIT = auto()
    EDIT_LABELS = auto()
    NONE = auto()


EDIT_ACTIONS = frozenset({Action.EDIT, Action.EDIT_LABELS})

# Shared by both panes in normal mode
_COMMON_KEYS = {
    "q": Action.QUIT,
    "j": Action.MOVE_DOWN,
    "down": Action.MOVE_DOWN,
    "k": Action.MOVE_UP,
    "up": Action.MOVE_UP,
    "/": Action.ENTER_SEARCH,
    "e": Action.EDIT,
    "L": Action.EDIT_LABELS,
    "G": Action.JUMP_TO_BOTTOM,
}

LIST_KEYS = {
    **_COMMON_KEYS,
    "enter": Action.SELECT,
    "escape": Action.GO_BACK,
    "h": Action.GO_BACK,
    "left": Action.GO_BACK,
    "l": Action.FOCUS_CONTENT,
    "right": Action.FOCUS_CONTENT,
    "tab": Action.FOCUS_CONTENT,
}

CONTENT_KEYS = {
    **_COMMON_KEYS,
    "escape": Action.FOCUS_LIST,
    "h": Action.FOCUS_LIST,
    "left": Action.FOCUS_LIST,
    "tab": Action.FOCUS_LIST,
}

SEARCH_KEYS = {
    "enter": Action.SUBMIT_SEARCH,
    "escape": Action.CANCEL_SEARCH,
    "backspace": Action.SEARCH_BACKSPACE,
}


def is_character(key: str) -> bool:
    return len(key) == 1 and key.isprintable()


def map_key(state: BrowserState, key: str) -> Action:
    """Translate a key into an action for the current mode and focus."""
    if key == "ctrl+c":
        return Action.QUIT

    if state.mode == Mode.SEARCH:
        if key in SEARCH_KEYS:
            return SEARCH_KEYS[key]
        return Action.SEARCH_INPUT if is_character(key) else Action.NONE

    if key == "g":
        # Second half of the gg chord; the first half is handled by dispatch_key
        return Action.JUMP_TO_TOP if state.pending_g else Action.NONE

    keymap = LIST_KEYS if state.focus == Focus.LIST else CONTENT_KEYS
    return keymap.get(key, Action.NONE)


def apply_action(state: BrowserState, action: Action, key: str = "", content_height: int = 0) -> None:
    """Perform a navigation action. ``EDIT`` and ``EDIT_LABELS`` are left to the caller."""
    in_list = state.focus == Focus.LIST

    if action == Action.QUIT:
        state.running = False
    elif action == Action.MOVE_DOWN:
        if in_list:
            state.move_cursor_down()
            state.update_content()
        else:
            state.scroll_content_down()
    elif action == Action.MOVE_UP:
        if in_list:
            state.move_cursor_up()
            state.update_content()
        else:
            state.scroll_content_up()
    elif action == Action.SELECT:
        state.select()
    elif action == Action.GO_BACK:
        state.go_back()
    elif action == Action.FOCUS_CONTENT:
        state.focus_content()
    elif action == Action.FOCUS_LIST:
        state.focus_list()
    elif action == Action.JUMP_TO_TOP:
        if in_list:
            state.jump_to_top()
            state.update_content()
        else:
            state.scroll_content_to_top()
    elif action == Action.JUMP_TO_BOTTOM:
        if in_list:
            state.jump_to_bottom()
            state.update_content()
        else:
            state.scroll_content_to_bottom(content_height)
    elif action == Action.ENTER_SEARCH:
        state.enter_search()
    elif action == Action.SUBMIT_SEARCH:
        state.submit_search()
    elif action == Action.CANCEL_SEARCH:
        state.cancel_search()
    elif action == Action.SEARCH_INPUT:
        state.search_input += key
    elif action == Action.SEARCH_BACKSPACE:
        state.search_input = state.search_input[:-1]


def dispatch_key(state: BrowserState, key: str, content_height: int = 0) -> Action:
    """Handle one key press and return the action taken.

    A lone ``g`` in normal mode only arms the chord. Any other key disarms
    it; a second ``g`` jumps to the top.
    """
    state.clear_message()
    action = map_key(state, key)

    if key == "g" and state.mode == Mode.NORMAL and action == Action.NONE:
        state.pending_g = True
        return Action.NONE

    state.pending_g = False
    apply_action(state, action, key, content_height)
    return action
