"""Application state and key dispatch for the judo terminal UI.

The whole UI state lives in one :class:`AppState` value. :func:`dispatch`
takes the state and one abstract key name, routes it to the handler of the
active screen and returns the updated state. Key names are produced by the
curses front end (``judo.tui``) but tests can feed them directly:

    printable characters   "a", "A", "q", " ", ...
    special keys           "enter", "esc", "backspace", "delete",
                           "up", "down", "left", "right", "home", "end",
                           "ctrl+w", "ctrl+s", "ctrl+up", "ctrl+down"
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable, Dict, List, Optional

from .config import DatabaseRegistry
from .core import (
    Selection,
    clamp_index,
    clamp_selection,
    deselect_item,
    follow_move,
    next_item,
    next_list,
    previous_item,
    previous_list,
    select_first_item,
)
from .editing import EditBuffer
from .errors import ConfigError, NotFoundError, StorageError, ValidationError
from .models import Direction, TodoItem, TodoList
from .storage import Storage

logger = logging.getLogger(__name__)


class Screen(Enum):
    MAIN = "main"
    DATABASE_MANAGEMENT = "database_management"
    ADD_LIST = "add_list"
    ADD_ITEM = "add_item"
    MODIFY_LIST = "modify_list"
    MODIFY_ITEM = "modify_item"
    ADD_DATABASE = "add_database"


EDIT_SCREENS = {
    Screen.ADD_LIST,
    Screen.ADD_ITEM,
    Screen.MODIFY_LIST,
    Screen.MODIFY_ITEM,
    Screen.ADD_DATABASE,
}

SCREEN_TITLES = {
    Screen.ADD_LIST: "Add List",
    Screen.ADD_ITEM: "Add Item",
    Screen.MODIFY_LIST: "Modify List",
    Screen.MODIFY_ITEM: "Modify Item",
    Screen.ADD_DATABASE: "Add Database",
}


@dataclass
class AppState:
    registry: DatabaseRegistry
    storage: Storage
    db_name: str
    lists: List[TodoList] = field(default_factory=list)
    selection: Selection = field(default_factory=Selection)
    screen: Screen = Screen.MAIN
    # Screen an edit popup returns to; set only while a popup is open.
    origin: Optional[Screen] = None
    session: Optional[EditBuffer] = None
    db_index: int = 0
    message: str = ""
    running: bool = True

    @property
    def selected_list(self) -> Optional[TodoList]:
        if self.selection.list is None:
            return None
        return self.lists[self.selection.list]

    @property
    def selected_item(self) -> Optional[TodoItem]:
        lst = self.selected_list
        if lst is None or self.selection.item is None:
            return None
        return lst.items[self.selection.item]

    def item_count(self) -> int:
        lst = self.selected_list
        return len(lst.items) if lst else 0

    def close(self) -> None:
        self.storage.close()


def open_app(registry: DatabaseRegistry, db_name: Optional[str] = None) -> AppState:
    """Open the given (or default) database and load it into a fresh state.

    Failing to reach the startup database is fatal and reported as ConfigError.
    """
    name = db_name or registry.default
    try:
        storage = registry.open(name)
        state = AppState(registry=registry, storage=storage, db_name=name)
        refresh(state)
    except (NotFoundError, StorageError) as e:
        raise ConfigError(f"Cannot open database '{name}': {e}") from e
    return state


def refresh(state: AppState) -> None:
    """Reload lists and items from storage and clamp the selection."""
    state.lists = state.storage.load_snapshot()
    state.selection = clamp_selection(
        state.selection, [len(lst.items) for lst in state.lists]
    )


# -- main screen actions ---------------------------------------------------


def quit_app(state: AppState) -> None:
    state.running = False


def select_next_list(state: AppState) -> None:
    state.selection = next_list(state.selection, len(state.lists))


def select_previous_list(state: AppState) -> None:
    state.selection = previous_list(state.selection, len(state.lists))


def select_next_item(state: AppState) -> None:
    state.selection = next_item(state.selection, state.item_count())


def select_previous_item(state: AppState) -> None:
    state.selection = previous_item(state.selection, state.item_count())


def enter_items(state: AppState) -> None:
    state.selection = select_first_item(state.selection, state.item_count())


def leave_items(state: AppState) -> None:
    state.selection = deselect_item(state.selection)


def move_list(state: AppState, direction: Direction) -> bool:
    """Swap the selected list with its neighbour; False at the boundary."""
    lst = state.selected_list
    if lst is None:
        return False
    if not state.storage.reorder_list(lst.id, direction):
        state.message = f"'{lst.name}' is already at the {'top' if direction == 'up' else 'bottom'}."
        return False
    index = follow_move(state.selection.list, len(state.lists), direction)
    state.selection = Selection(index, state.selection.item)
    refresh(state)
    return True


def move_item(state: AppState, direction: Direction) -> bool:
    """Swap the selected item with its neighbour; False at the boundary."""
    item = state.selected_item
    if item is None:
        return False
    if not state.storage.reorder_item(item.id, direction):
        state.message = f"'{item.name}' is already at the {'top' if direction == 'up' else 'bottom'}."
        return False
    index = follow_move(state.selection.item, state.item_count(), direction)
    state.selection = Selection(state.selection.list, index)
    refresh(state)
    return True


def toggle_selected_item(state: AppState) -> None:
    item = state.selected_item
    if item is None:
        return
    state.storage.update_item(item.id, is_done=not item.is_done)
    refresh(state)


def delete_selected_list(state: AppState) -> None:
    lst = state.selected_list
    if lst is None:
        return
    index = state.selection.list
    state.storage.delete_list(lst.id)
    state.lists = state.storage.load_snapshot()
    state.selection = Selection(clamp_index(index, len(state.lists)))
    state.message = f"Deleted list '{lst.name}'."


def delete_selected_item(state: AppState) -> None:
    item = state.selected_item
    if item is None:
        return
    state.storage.delete_item(item.id)
    refresh(state)
    state.message = f"Deleted item '{item.name}'."


def open_editor(state: AppState, screen: Screen, text: str = "") -> None:
    state.session = EditBuffer(text)
    state.origin = (
        Screen.DATABASE_MANAGEMENT if screen == Screen.ADD_DATABASE else Screen.MAIN
    )
    state.screen = screen


def close_editor(state: AppState) -> None:
    state.screen = state.origin or Screen.MAIN
    state.origin = None
    state.session = None


def start_add_list(state: AppState) -> None:
    open_editor(state, Screen.ADD_LIST)


def start_add_item(state: AppState) -> None:
    if state.selected_list is None:
        state.message = "Select a list first."
        return
    open_editor(state, Screen.ADD_ITEM)


def start_modify_list(state: AppState) -> None:
    lst = state.selected_list
    if lst is None:
        state.message = "Select a list first."
        return
    open_editor(state, Screen.MODIFY_LIST, lst.name)


def start_modify_item(state: AppState) -> None:
    item = state.selected_item
    if item is None:
        state.message = "Select an item first."
        return
    open_editor(state, Screen.MODIFY_ITEM, item.name)


def enter_database_screen(state: AppState) -> None:
    names = state.registry.names()
    state.db_index = names.index(state.db_name) if state.db_name in names else 0
    state.screen = Screen.DATABASE_MANAGEMENT


MAIN_ACTIONS: Dict[str, Callable[[AppState], None]] = {
    "q": quit_app,
    "w": select_previous_list,
    "s": select_next_list,
    "up": select_previous_item,
    "down": select_next_item,
    "right": enter_items,
    "left": leave_items,
    "ctrl+w": lambda state: move_list(state, "up"),
    "ctrl+s": lambda state: move_list(state, "down"),
    "ctrl+up": lambda state: move_item(state, "up"),
    "ctrl+down": lambda state: move_item(state, "down"),
    "enter": toggle_selected_item,
    "A": start_add_list,
    "a": start_add_item,
    "M": start_modify_list,
    "m": start_modify_item,
    "D": delete_selected_list,
    "d": delete_selected_item,
    "C": enter_database_screen,
}


# -- edit popups -------------------------------------------------------------


def commit_add_list(state: AppState, name: str) -> None:
    new_id = state.storage.create_list(name)
    refresh(state)
    for i, lst in enumerate(state.lists):
        if lst.id == new_id:
            state.selection = Selection(i)
    state.message = f"Added list '{name}'."


def commit_modify_list(state: AppState, name: str) -> None:
    lst = state.selected_list
    if lst is None:
        raise NotFoundError("The list being modified no longer exists")
    state.storage.rename_list(lst.id, name)
    refresh(state)


def commit_add_item(state: AppState, name: str) -> None:
    lst = state.selected_list
    if lst is None:
        raise NotFoundError("The list for the new item no longer exists")
    state.storage.create_item(lst.id, name)
    refresh(state)


def commit_modify_item(state: AppState, name: str) -> None:
    item = state.selected_item
    if item is None:
        raise NotFoundError("The item being modified no longer exists")
    state.storage.update_item(item.id, name=name)
    refresh(state)


def commit_add_database(state: AppState, name: str) -> None:
    entry = state.registry.add_database(name)
    state.db_index = state.registry.names().index(entry.name)
    state.message = f"Added database '{entry.name}'."


COMMITS: Dict[Screen, Callable[[AppState, str], None]] = {
    Screen.ADD_LIST: commit_add_list,
    Screen.MODIFY_LIST: commit_modify_list,
    Screen.ADD_ITEM: commit_add_item,
    Screen.MODIFY_ITEM: commit_modify_item,
    Screen.ADD_DATABASE: commit_add_database,
}

FIELD_NAMES = {
    Screen.ADD_LIST: "List name",
    Screen.MODIFY_LIST: "List name",
    Screen.ADD_ITEM: "Item description",
    Screen.MODIFY_ITEM: "Item description",
    Screen.ADD_DATABASE: "Database name",
}

EDIT_ACTIONS: Dict[str, Callable[[EditBuffer], None]] = {
    "backspace": EditBuffer.backspace,
    "delete": EditBuffer.delete,
    "left": EditBuffer.left,
    "right": EditBuffer.right,
    "home": EditBuffer.home,
    "end": EditBuffer.end,
}


def handle_edit(state: AppState, key: str) -> None:
    session = state.session
    if key == "esc":
        close_editor(state)
    elif key == "enter":
        # ValidationError leaves the popup open with its text intact.
        text = session.value(FIELD_NAMES[state.screen])
        COMMITS[state.screen](state, text)
        close_editor(state)
    elif key in EDIT_ACTIONS:
        EDIT_ACTIONS[key](session)
    elif len(key) == 1 and key.isprintable():
        session.insert(key)


# -- database management -----------------------------------------------------


def switch_database(state: AppState, name: str) -> None:
    """Make ``name`` the active database and forget everything about the old one."""
    storage = state.registry.open(name)
    state.storage.close()
    state.storage = storage
    state.db_name = name
    state.selection = Selection()
    state.lists = []
    refresh(state)
    logger.debug("Switched to database %s", name)


def db_previous(state: AppState) -> None:
    count = len(state.registry.names())
    if count:
        state.db_index = (state.db_index - 1) % count


def db_next(state: AppState) -> None:
    count = len(state.registry.names())
    if count:
        state.db_index = (state.db_index + 1) % count


def db_switch_selected(state: AppState) -> None:
    name = state.registry.names()[state.db_index]
    switch_database(state, name)
    state.screen = Screen.MAIN
    state.message = f"Switched to database '{name}'."


def db_set_default(state: AppState) -> None:
    name = state.registry.names()[state.db_index]
    state.registry.set_default(name)
    state.message = f"'{name}' is now the default database."


def db_back(state: AppState) -> None:
    state.screen = Screen.MAIN


DATABASE_ACTIONS: Dict[str, Callable[[AppState], None]] = {
    "up": db_previous,
    "down": db_next,
    "enter": db_switch_selected,
    "A": lambda state: open_editor(state, Screen.ADD_DATABASE),
    "S": db_set_default,
    "esc": db_back,
}


# -- dispatch ----------------------------------------------------------------


def handle_main(state: AppState, key: str) -> None:
    action = MAIN_ACTIONS.get(key)
    if action:
        action(state)


def handle_database(state: AppState, key: str) -> None:
    action = DATABASE_ACTIONS.get(key)
    if action:
        action(state)


HANDLERS: Dict[Screen, Callable[[AppState, str], None]] = {
    Screen.MAIN: handle_main,
    Screen.DATABASE_MANAGEMENT: handle_database,
    Screen.ADD_LIST: handle_edit,
    Screen.ADD_ITEM: handle_edit,
    Screen.MODIFY_LIST: handle_edit,
    Screen.MODIFY_ITEM: handle_edit,
    Screen.ADD_DATABASE: handle_edit,
}


def dispatch(state: AppState, key: str) -> AppState:
    """Process one key press on the active screen and return the new state."""
    state.message = ""
    try:
        HANDLERS[state.screen](state, key)
    except ValidationError as e:
        state.message = str(e)
    except NotFoundError as e:
        logger.warning("Stale reference, reloading: %s", e)
        state.message = f"{e}. Reloaded."
        if state.screen in EDIT_SCREENS:
            close_editor(state)
        try:
            refresh(state)
        except StorageError as err:
            state.message = str(err)
    except (StorageError, ConfigError) as e:
        logger.warning("Operation failed: %s", e)
        state.message = str(e)
        if state.screen in EDIT_SCREENS:
            close_editor(state)
    return state
