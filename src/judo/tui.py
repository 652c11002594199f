"""judo curses-based terminal user interface."""

import curses
import logging
import os
from typing import List, Optional, Tuple, Union

from .config import DatabaseRegistry
from .state import (
    EDIT_SCREENS,
    SCREEN_TITLES,
    AppState,
    Screen,
    dispatch,
    open_app,
)

logger = logging.getLogger(__name__)

MAIN_HINTS = (
    "w,s lists  [A]dd [D]el [M]odify  ^w,^s move  |  "
    "arrows items  [a]dd [d]el [m]odify  ^arrows move  Enter done  |  [C]hange db  [q]uit"
)
EDIT_HINTS = "Enter save | Esc cancel | arrows/Home/End move cursor"
DATABASE_HINTS = "up/down select | Enter switch | [A]dd | [S]et default | Esc back"

SPECIAL_KEYS = {
    curses.KEY_UP: "up",
    curses.KEY_DOWN: "down",
    curses.KEY_LEFT: "left",
    curses.KEY_RIGHT: "right",
    curses.KEY_HOME: "home",
    curses.KEY_END: "end",
    curses.KEY_ENTER: "enter",
    curses.KEY_BACKSPACE: "backspace",
    curses.KEY_DC: "delete",
}
# Terminfo names for Ctrl+Up / Ctrl+Down (xterm and most emulators).
NAMED_KEYS = {
    b"kUP5": "ctrl+up",
    b"kDN5": "ctrl+down",
}
CONTROL_CHARS = {
    "\n": "enter",
    "\r": "enter",
    "\x1b": "esc",
    "\x7f": "backspace",
    "\x08": "backspace",
    "\x17": "ctrl+w",
    "\x13": "ctrl+s",
}


def translate_key(ch: Union[int, str]) -> Optional[str]:
    """Map a ``get_wch`` result to the key names understood by dispatch()."""
    if isinstance(ch, str):
        if ch in CONTROL_CHARS:
            return CONTROL_CHARS[ch]
        return ch if ch.isprintable() else None
    if ch in SPECIAL_KEYS:
        return SPECIAL_KEYS[ch]
    try:
        name = curses.keyname(ch)
    except (ValueError, curses.error):
        return None
    return NAMED_KEYS.get(name)


def scroll_offset(selected: Optional[int], offset: int, height: int) -> int:
    """Keep ``selected`` inside a window of ``height`` rows starting at ``offset``."""
    if selected is None or height <= 0:
        return 0 if selected is None else offset
    if selected < offset:
        return selected
    if selected >= offset + height:
        return selected - height + 1
    return offset


def visible_text(text: str, cursor: int, width: int) -> Tuple[str, int]:
    """Slice of ``text`` that fits in ``width`` columns with the cursor visible."""
    if width <= 1:
        return "", 0
    start = max(0, cursor - width + 1)
    return text[start : start + width], cursor - start


class TUI:
    """Curses front end: draws an AppState and feeds key presses to dispatch()."""

    def __init__(self, stdscr, state: AppState):
        self.stdscr = stdscr
        self.state = state
        self.list_scroll = 0
        self.item_scroll = 0
        curses.curs_set(0)
        # Raw mode so that Ctrl+S / Ctrl+W reach us instead of the tty driver.
        curses.raw()
        self.stdscr.keypad(True)
        self.height, self.width = self.stdscr.getmaxyx()

        self.has_colors = curses.has_colors()
        if self.has_colors:
            curses.start_color()
            try:
                curses.use_default_colors()
            except curses.error:
                pass
            curses.init_pair(1, curses.COLOR_YELLOW, -1)
            curses.init_pair(2, curses.COLOR_CYAN, -1)
            curses.init_pair(3, curses.COLOR_RED, -1)
            self.COL_TITLE = curses.color_pair(1) | curses.A_BOLD
            self.COL_HINT = curses.color_pair(2)
            self.COL_ERROR = curses.color_pair(3)
        else:
            self.COL_TITLE = curses.A_BOLD
            self.COL_HINT = curses.A_DIM
            self.COL_ERROR = curses.A_BOLD

    def put(self, y: int, x: int, text: str, attrs: int = curses.A_NORMAL, win=None):
        """addnstr that silently clips to the window."""
        win = win or self.stdscr
        h, w = win.getmaxyx()
        if y < 0 or y >= h or x < 0 or x >= w - 1:
            return
        win.addnstr(y, x, text, w - 1 - x, attrs)

    def draw(self):
        """Render header, both panels, popups and status line."""
        self.stdscr.erase()
        self.height, self.width = self.stdscr.getmaxyx()
        state = self.state

        self.put(0, 1, "J U D O", self.COL_TITLE)
        db_label = f"Database: {state.db_name}  [C]hange"
        self.put(0, max(10, self.width - len(db_label) - 2), db_label)
        self.stdscr.hline(1, 0, curses.ACS_HLINE, self.width)

        top = 2
        body_h = self.height - top - 3
        if body_h < 1:
            self.stdscr.refresh()
            return

        lists_w = max(16, self.width * 30 // 100)
        self.draw_lists(top, body_h, lists_w)
        self.stdscr.vline(top, lists_w, curses.ACS_VLINE, body_h + 1)
        self.draw_items(top, body_h, lists_w + 2)

        self.stdscr.hline(self.height - 2, 0, curses.ACS_HLINE, self.width)
        if state.message:
            self.put(self.height - 1, 0, state.message, self.COL_ERROR)
        elif state.screen in EDIT_SCREENS:
            self.put(self.height - 1, 0, EDIT_HINTS, self.COL_HINT)
        elif state.screen == Screen.DATABASE_MANAGEMENT:
            self.put(self.height - 1, 0, DATABASE_HINTS, self.COL_HINT)
        else:
            self.put(self.height - 1, 0, MAIN_HINTS, self.COL_HINT)
        self.stdscr.refresh()

        if state.screen == Screen.DATABASE_MANAGEMENT:
            self.draw_database_popup()
        elif state.screen in EDIT_SCREENS:
            self.draw_edit_popup(lists_w)

    def draw_lists(self, top: int, body_h: int, width: int):
        state = self.state
        self.put(top, 1, "L I S T S", curses.A_BOLD)
        rows = body_h - 1
        self.list_scroll = scroll_offset(state.selection.list, self.list_scroll, rows)
        for row, lst in enumerate(state.lists[self.list_scroll : self.list_scroll + rows]):
            idx = self.list_scroll + row
            selected = idx == state.selection.list
            marker = " > " if selected else "   "
            attrs = curses.A_REVERSE if selected else curses.A_NORMAL
            line = f"{marker}{lst.name}"[: width - 1]
            self.put(top + 1 + row, 0, line.ljust(width - 1), attrs)

    def draw_items(self, top: int, body_h: int, left: int):
        state = self.state
        self.put(top, left, "I T E M S", curses.A_BOLD)
        lst = state.selected_list
        if lst is None:
            self.put(top + 2, left, "Select a list with w/s.", curses.A_DIM)
            return
        if not lst.items:
            self.put(top + 2, left, "No items. Press 'a' to add one.", curses.A_DIM)
            return
        rows = body_h - 1
        width = self.width - left
        self.item_scroll = scroll_offset(state.selection.item, self.item_scroll, rows)
        for row, item in enumerate(lst.items[self.item_scroll : self.item_scroll + rows]):
            idx = self.item_scroll + row
            selected = idx == state.selection.item
            marker = " > " if selected else "   "
            box = "[x]" if item.is_done else "[ ]"
            attrs = curses.A_DIM if item.is_done else curses.A_NORMAL
            if selected:
                attrs |= curses.A_REVERSE
            line = f"{marker}{box} {item.name}"[: max(0, width - 1)]
            self.put(top + 1 + row, left, line, attrs)

    def draw_edit_popup(self, lists_w: int):
        state = self.state
        if state.screen in (Screen.ADD_LIST, Screen.MODIFY_LIST):
            area_x, area_w = 0, lists_w
        elif state.screen == Screen.ADD_DATABASE:
            area_x, area_w = 0, self.width
        else:
            area_x, area_w = lists_w + 1, self.width - lists_w - 1
        win_w = max(20, min(self.width - 2, area_w * 3 // 4))
        win_h = 3
        y0 = max(0, (self.height - win_h) // 2)
        x0 = max(0, min(self.width - win_w, area_x + (area_w - win_w) // 2))

        win = curses.newwin(win_h, win_w, y0, x0)
        win.erase()
        win.border()
        self.put(0, 2, f" {SCREEN_TITLES[state.screen]} ", curses.A_BOLD, win)
        self.put(win_h - 1, win_w - 8, " Esc ", curses.A_DIM, win)

        session = state.session
        text, cur = visible_text(session.text, session.cursor, win_w - 4)
        self.put(1, 2, text, curses.A_NORMAL, win)
        under = text[cur] if cur < len(text) else " "
        self.put(1, 2 + cur, under, curses.A_REVERSE, win)
        win.refresh()

    def draw_database_popup(self):
        state = self.state
        dbs = state.registry.list_databases()
        lines: List[str] = []
        for db in dbs:
            flags = []
            if db.is_default:
                flags.append("*")
            if db.name == state.db_name:
                flags.append("active")
            suffix = f"  ({', '.join(flags)})" if flags else ""
            lines.append(f"{db.name}{suffix}")

        win_w = min(self.width - 2, max(32, max((len(s) for s in lines), default=0) + 8))
        win_h = min(self.height - 2, len(lines) + 2)
        if win_w < 4 or win_h < 3:
            return
        win = curses.newwin(win_h, win_w, 2, max(0, self.width - win_w - 1))
        win.erase()
        win.border()
        self.put(0, 2, " Select Database ", curses.A_BOLD, win)
        scroll = scroll_offset(state.db_index, 0, win_h - 2)
        for row, line in enumerate(lines[scroll : scroll + win_h - 2]):
            idx = scroll + row
            attrs = curses.A_REVERSE if idx == state.db_index else curses.A_NORMAL
            marker = " > " if idx == state.db_index else "   "
            self.put(1 + row, 1, f"{marker}{line}".ljust(win_w - 3), attrs, win)
        win.refresh()

    def run(self):
        """Main event loop."""
        while self.state.running:
            self.draw()
            try:
                ch = self.stdscr.get_wch()
            except curses.error:
                continue
            if ch == curses.KEY_RESIZE:
                continue
            key = translate_key(ch)
            if key is None:
                continue
            self.state = dispatch(self.state, key)


def start_curses(state: AppState):
    """Initialize curses and run the TUI on an already opened state."""

    def _main(stdscr):
        TUI(stdscr, state).run()

    os.environ.setdefault("ESCDELAY", "25")
    try:
        curses.wrapper(_main)
    finally:
        state.close()


def main(registry: DatabaseRegistry, db_name: Optional[str] = None) -> None:
    """TUI entry point. Raises ConfigError if the database cannot be opened."""
    state = open_app(registry, db_name)
    logger.debug("Starting TUI on database %s", state.db_name)
    start_curses(state)
