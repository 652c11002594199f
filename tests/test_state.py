"""Drive the screen state machine with key names, no terminal needed."""

import pytest

from judo.config import DatabaseRegistry
from judo.core import Selection
from judo.errors import ConfigError
from judo.state import Screen, dispatch, open_app


def press(state, *keys):
    for key in keys:
        state = dispatch(state, key)
    return state


def type_text(state, text):
    return press(state, *text)


def add_list(state, name):
    press(state, "A")
    type_text(state, name)
    return press(state, "enter")


def add_item(state, text):
    press(state, "a")
    type_text(state, text)
    return press(state, "enter")


def names(state):
    return [lst.name for lst in state.lists]


def item_names(state):
    return [item.name for item in state.selected_list.items]


def test_initial_state(app):
    assert app.screen == Screen.MAIN
    assert app.selection == Selection()
    assert app.lists == []
    assert app.running


def test_quit(app):
    assert press(app, "q").running is False


def test_add_list_selects_it(app):
    add_list(app, "Home")
    add_list(app, "Work")
    assert names(app) == ["Home", "Work"]
    assert app.selection == Selection(1)
    assert app.screen == Screen.MAIN
    assert app.session is None


def test_empty_name_keeps_popup_open(app):
    press(app, "A", " ", "enter")
    assert app.screen == Screen.ADD_LIST
    assert "cannot be empty" in app.message
    assert app.session.text == " "
    press(app, "esc")
    assert app.screen == Screen.MAIN
    assert app.lists == []


def test_keys_are_routed_by_screen(app):
    add_list(app, "Home")
    press(app, "a")
    type_text(app, "quads")
    assert app.running
    assert app.session.text == "quads"
    press(app, "enter")
    assert item_names(app) == ["quads"]
    assert app.screen == Screen.MAIN


def test_add_item_needs_a_list(app):
    press(app, "a")
    assert app.screen == Screen.MAIN
    assert app.message == "Select a list first."


def test_cancel_modify_leaves_entity_unchanged(app):
    add_list(app, "Home")
    press(app, "M")
    assert app.screen == Screen.MODIFY_LIST
    assert app.session.text == "Home"
    assert app.session.cursor == 0
    type_text(app, "My ")
    press(app, "esc")
    assert app.session is None
    assert names(app) == ["Home"]
    assert app.storage.list_lists()[0].name == "Home"


def test_modify_list(app):
    add_list(app, "Hme")
    press(app, "M", "right", "o", "end", "!", "enter")
    assert names(app) == ["Home!"]


def test_item_navigation_and_toggle(app):
    add_list(app, "Groceries")
    add_item(app, "Milk")
    add_item(app, "Eggs")
    press(app, "enter")
    assert not any(item.is_done for item in app.selected_list.items)

    press(app, "right")
    assert app.selection == Selection(0, 0)
    press(app, "enter")
    press(app, "down", "down")
    assert app.selection == Selection(0, 1)
    press(app, "left")
    assert app.selection == Selection(0, None)

    (groceries,) = app.storage.load_snapshot()
    assert [(i.name, i.is_done) for i in groceries.items] == [("Milk", True), ("Eggs", False)]


def test_modify_item(app):
    add_list(app, "L")
    add_item(app, "Buy mlk")
    press(app, "right", "m")
    assert app.session.text == "Buy mlk"
    press(app, "end", "left", "left", "i", "enter")
    assert item_names(app) == ["Buy milk"]
    assert app.selection == Selection(0, 0)


def test_modify_item_needs_item(app):
    add_list(app, "L")
    press(app, "m")
    assert app.screen == Screen.MAIN
    assert app.message == "Select an item first."


def test_switching_list_clears_item_selection(app):
    add_list(app, "A")
    add_item(app, "a1")
    add_list(app, "B")
    press(app, "w", "right")
    assert app.selection == Selection(0, 0)
    press(app, "s")
    assert app.selection == Selection(1, None)


def test_reorder_items_follows_selection(app):
    add_list(app, "L")
    for text in ("one", "two", "three"):
        add_item(app, text)
    press(app, "right", "ctrl+down")
    assert item_names(app) == ["two", "one", "three"]
    assert app.selection == Selection(0, 1)
    press(app, "ctrl+down", "ctrl+up", "ctrl+up")
    assert item_names(app) == ["one", "two", "three"]
    assert app.selection == Selection(0, 0)


def test_reorder_at_top_is_benign(app):
    add_list(app, "Home")
    add_item(app, "Buy milk")
    press(app, "right", "ctrl+up")
    assert "already at the top" in app.message
    assert item_names(app) == ["Buy milk"]
    assert app.selection == Selection(0, 0)


def test_reorder_lists(app):
    add_list(app, "A")
    add_list(app, "B")
    press(app, "ctrl+w")
    assert names(app) == ["B", "A"]
    assert app.selection == Selection(0)
    press(app, "ctrl+s")
    assert names(app) == ["A", "B"]
    assert app.selection == Selection(1)
    press(app, "ctrl+s")
    assert "already at the bottom" in app.message


def test_delete_item_reclamps(app):
    add_list(app, "L")
    add_item(app, "a")
    add_item(app, "b")
    press(app, "right", "down", "d")
    assert item_names(app) == ["a"]
    assert app.selection == Selection(0, 0)
    press(app, "d")
    assert app.selection == Selection(0, None)
    assert app.selected_list.items == []


def test_delete_list_reclamps(app):
    add_list(app, "A")
    add_list(app, "B")
    add_item(app, "b1")
    press(app, "right", "D")
    assert names(app) == ["A"]
    assert app.selection == Selection(0, None)
    press(app, "D")
    assert app.lists == []
    assert app.selection == Selection()


def test_home_scenario(app):
    add_list(app, "Home")
    add_item(app, "Buy milk")
    press(app, "right", "ctrl+up")
    assert "already" in app.message
    press(app, "D")
    assert app.storage.list_lists() == []
    assert app.lists == []


def test_database_screen_navigation(app):
    app.registry.add_database("work")
    press(app, "C")
    assert app.screen == Screen.DATABASE_MANAGEMENT
    assert app.db_index == 0
    press(app, "down")
    assert app.db_index == 1
    press(app, "down")
    assert app.db_index == 0
    press(app, "up")
    assert app.db_index == 1
    press(app, "esc")
    assert app.screen == Screen.MAIN
    assert app.db_name == app.registry.default


def test_add_database_returns_to_database_screen(app):
    press(app, "C", "A")
    assert app.screen == Screen.ADD_DATABASE
    type_text(app, "work")
    press(app, "enter")
    assert app.screen == Screen.DATABASE_MANAGEMENT
    assert "work" in app.registry.names()
    assert app.db_index == app.registry.names().index("work")


def test_add_duplicate_database_stays_open(app):
    press(app, "C", "A")
    type_text(app, app.db_name)
    press(app, "enter")
    assert app.screen == Screen.ADD_DATABASE
    assert "already exists" in app.message


def test_switch_database_resets_selection(app):
    add_list(app, "Home")
    add_item(app, "Buy milk")
    press(app, "right")
    assert app.selection == Selection(0, 0)

    press(app, "C", "A")
    type_text(app, "work")
    press(app, "enter", "enter")
    assert app.screen == Screen.MAIN
    assert app.db_name == "work"
    assert app.selection == Selection()
    assert app.lists == []

    add_list(app, "Office")
    press(app, "C")
    assert app.db_index == 1
    press(app, "up", "enter")
    assert names(app) == ["Home"]
    assert app.selection == Selection()


def test_set_default_from_database_screen(app):
    app.registry.add_database("work")
    press(app, "C", "down", "S")
    assert app.registry.default == "work"
    assert app.screen == Screen.DATABASE_MANAGEMENT
    assert [db.name for db in app.registry.list_databases() if db.is_default] == ["work"]


def test_stale_list_is_resynced(app):
    add_list(app, "Home")
    press(app, "M")
    app.storage.delete_list(app.lists[0].id)
    type_text(app, "X")
    press(app, "enter")
    assert app.screen == Screen.MAIN
    assert "Reloaded" in app.message
    assert app.lists == []
    assert app.selection == Selection()


def test_storage_failure_returns_to_previous_screen(app):
    app.storage.conn.close()
    press(app, "A")
    type_text(app, "Doomed")
    press(app, "enter")
    assert app.screen == Screen.MAIN
    assert app.session is None
    assert app.message


def test_message_clears_on_next_key(app):
    press(app, "a")
    assert app.message
    press(app, "w")
    assert app.message == ""


def test_unreachable_startup_database_is_fatal(tmp_path, config_path):
    registry = DatabaseRegistry.load(config_path)
    registry.add_database("gone", f"sqlite:{tmp_path / 'x.db'}")
    registry.config.dbs[-1].connection_str = f"sqlite:{tmp_path / 'missing' / 'x.db'}"
    with pytest.raises(ConfigError):
        open_app(registry, "gone")
