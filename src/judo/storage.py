"""SQLite storage for judo lists and items.

Every mutating call runs in its own transaction and is committed before it
returns. Positions (the ``ordering`` column) are kept dense: after each insert,
delete or swap they form 0..n-1 within their scope (the database for lists,
the parent list for items).
"""

import logging
import os
import sqlite3
from typing import List, Optional

from .errors import NotFoundError, StorageError
from .models import Direction, TodoItem, TodoList

logger = logging.getLogger(__name__)

SCHEMA = """
CREATE TABLE IF NOT EXISTS todo_lists (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    name     TEXT    NOT NULL CHECK (name <> ''),
    ordering INTEGER NOT NULL
);
CREATE TABLE IF NOT EXISTS todo_items (
    id       INTEGER PRIMARY KEY AUTOINCREMENT,
    list_id  INTEGER NOT NULL REFERENCES todo_lists(id) ON DELETE CASCADE,
    name     TEXT    NOT NULL CHECK (name <> ''),
    is_done  INTEGER NOT NULL DEFAULT 0,
    ordering INTEGER NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_todo_items_list ON todo_items (list_id, ordering);
"""


def locator_path(locator: str) -> str:
    """Strip the ``sqlite:`` scheme from a connection string."""
    for prefix in ("sqlite://", "sqlite:"):
        if locator.startswith(prefix):
            return locator[len(prefix):]
    return locator


class Storage:
    """CRUD and reorder operations over one judo database file."""

    def __init__(self, locator: str):
        self.locator = locator
        self.path = locator_path(locator)
        if not self.path:
            raise NotFoundError(f"Empty database location in {locator!r}")
        if self.path != ":memory:":
            parent = os.path.dirname(os.path.abspath(self.path))
            if not os.path.isdir(parent):
                raise NotFoundError(f"Database directory does not exist: {parent}")
        try:
            self.conn = sqlite3.connect(self.path)
        except sqlite3.Error as e:
            raise NotFoundError(f"Cannot open database {locator!r}: {e}") from e
        try:
            self.conn.row_factory = sqlite3.Row
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.executescript(SCHEMA)
        except sqlite3.Error as e:
            self.conn.close()
            raise NotFoundError(f"Cannot open database {locator!r}: {e}") from e
        logger.debug("Opened database %s", self.path)

    def close(self) -> None:
        self.conn.close()

    def __enter__(self) -> "Storage":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # -- helpers ---------------------------------------------------------

    def _query(self, sql: str, params: tuple = ()) -> List[sqlite3.Row]:
        try:
            return self.conn.execute(sql, params).fetchall()
        except sqlite3.Error as e:
            raise StorageError(f"Database read failed: {e}") from e

    def _renumber(self, table: str, scope: str, params: tuple) -> None:
        """Rewrite positions in a scope as 0..n-1, keeping the current order."""
        rows = self.conn.execute(
            f"SELECT id FROM {table} WHERE {scope} ORDER BY ordering, id", params
        ).fetchall()
        for pos, row in enumerate(rows):
            self.conn.execute(
                f"UPDATE {table} SET ordering = ? WHERE id = ?", (pos, row["id"])
            )

    def _swap(self, table: str, row_id: int, direction: Direction, scope_col: Optional[str]) -> bool:
        """Swap a row with its neighbour; False when already at the boundary."""
        if direction not in ("up", "down"):
            raise ValueError(f"direction must be 'up' or 'down', not {direction!r}")
        cols = f"ordering, {scope_col}" if scope_col else "ordering"
        try:
            with self.conn:
                row = self.conn.execute(
                    f"SELECT {cols} FROM {table} WHERE id = ?", (row_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"No such entry in {table}: {row_id}")
                target = row["ordering"] - 1 if direction == "up" else row["ordering"] + 1
                if scope_col:
                    neighbour = self.conn.execute(
                        f"SELECT id FROM {table} WHERE {scope_col} = ? AND ordering = ?",
                        (row[scope_col], target),
                    ).fetchone()
                else:
                    neighbour = self.conn.execute(
                        f"SELECT id FROM {table} WHERE ordering = ?", (target,)
                    ).fetchone()
                if neighbour is None:
                    return False
                self.conn.execute(
                    f"UPDATE {table} SET ordering = ? WHERE id = ?",
                    (row["ordering"], neighbour["id"]),
                )
                self.conn.execute(
                    f"UPDATE {table} SET ordering = ? WHERE id = ?", (target, row_id)
                )
        except sqlite3.Error as e:
            raise StorageError(f"Reorder failed, nothing was changed: {e}") from e
        logger.debug("Moved %s %s %s", table, row_id, direction)
        return True

    # -- lists -----------------------------------------------------------

    def list_lists(self) -> List[TodoList]:
        rows = self._query("SELECT id, name, ordering FROM todo_lists ORDER BY ordering, id")
        return [TodoList(id=r["id"], name=r["name"], ordering=r["ordering"]) for r in rows]

    def get_list(self, list_id: int) -> TodoList:
        rows = self._query(
            "SELECT id, name, ordering FROM todo_lists WHERE id = ?", (list_id,)
        )
        if not rows:
            raise NotFoundError(f"No list with id {list_id}")
        r = rows[0]
        return TodoList(id=r["id"], name=r["name"], ordering=r["ordering"])

    def create_list(self, name: str) -> int:
        try:
            with self.conn:
                (count,) = self.conn.execute("SELECT COUNT(*) FROM todo_lists").fetchone()
                cur = self.conn.execute(
                    "INSERT INTO todo_lists (name, ordering) VALUES (?, ?)", (name, count)
                )
        except sqlite3.Error as e:
            raise StorageError(f"Could not create list: {e}") from e
        logger.debug("Created list %s (%r)", cur.lastrowid, name)
        return cur.lastrowid

    def rename_list(self, list_id: int, name: str) -> None:
        try:
            with self.conn:
                cur = self.conn.execute(
                    "UPDATE todo_lists SET name = ? WHERE id = ?", (name, list_id)
                )
        except sqlite3.Error as e:
            raise StorageError(f"Could not rename list: {e}") from e
        if cur.rowcount == 0:
            raise NotFoundError(f"No list with id {list_id}")
        logger.debug("Renamed list %s to %r", list_id, name)

    def delete_list(self, list_id: int) -> None:
        """Delete a list together with its items."""
        try:
            with self.conn:
                cur = self.conn.execute("DELETE FROM todo_lists WHERE id = ?", (list_id,))
                if cur.rowcount:
                    self._renumber("todo_lists", "1 = 1", ())
        except sqlite3.Error as e:
            raise StorageError(f"Could not delete list: {e}") from e
        if cur.rowcount == 0:
            raise NotFoundError(f"No list with id {list_id}")
        logger.debug("Deleted list %s", list_id)

    def reorder_list(self, list_id: int, direction: Direction) -> bool:
        return self._swap("todo_lists", list_id, direction, None)

    # -- items -----------------------------------------------------------

    @staticmethod
    def _item(r: sqlite3.Row) -> TodoItem:
        return TodoItem(
            id=r["id"],
            list_id=r["list_id"],
            name=r["name"],
            is_done=bool(r["is_done"]),
            ordering=r["ordering"],
        )

    def list_items(self, list_id: int) -> List[TodoItem]:
        rows = self._query(
            "SELECT id, list_id, name, is_done, ordering FROM todo_items "
            "WHERE list_id = ? ORDER BY ordering, id",
            (list_id,),
        )
        return [self._item(r) for r in rows]

    def get_item(self, item_id: int) -> TodoItem:
        rows = self._query(
            "SELECT id, list_id, name, is_done, ordering FROM todo_items WHERE id = ?",
            (item_id,),
        )
        if not rows:
            raise NotFoundError(f"No item with id {item_id}")
        return self._item(rows[0])

    def create_item(self, list_id: int, name: str) -> int:
        try:
            with self.conn:
                if self.conn.execute(
                    "SELECT 1 FROM todo_lists WHERE id = ?", (list_id,)
                ).fetchone() is None:
                    raise NotFoundError(f"No list with id {list_id}")
                (count,) = self.conn.execute(
                    "SELECT COUNT(*) FROM todo_items WHERE list_id = ?", (list_id,)
                ).fetchone()
                cur = self.conn.execute(
                    "INSERT INTO todo_items (list_id, name, is_done, ordering) "
                    "VALUES (?, ?, 0, ?)",
                    (list_id, name, count),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Could not create item: {e}") from e
        logger.debug("Created item %s in list %s", cur.lastrowid, list_id)
        return cur.lastrowid

    def update_item(
        self, item_id: int, name: Optional[str] = None, is_done: Optional[bool] = None
    ) -> None:
        """Change an item's description and/or completion flag."""
        sets, params = [], []
        if name is not None:
            sets.append("name = ?")
            params.append(name)
        if is_done is not None:
            sets.append("is_done = ?")
            params.append(int(is_done))
        if not sets:
            return
        try:
            with self.conn:
                cur = self.conn.execute(
                    f"UPDATE todo_items SET {', '.join(sets)} WHERE id = ?",
                    (*params, item_id),
                )
        except sqlite3.Error as e:
            raise StorageError(f"Could not update item: {e}") from e
        if cur.rowcount == 0:
            raise NotFoundError(f"No item with id {item_id}")
        logger.debug("Updated item %s", item_id)

    def toggle_item(self, item_id: int) -> bool:
        """Flip completion of an item and return the new value."""
        item = self.get_item(item_id)
        self.update_item(item_id, is_done=not item.is_done)
        return not item.is_done

    def delete_item(self, item_id: int) -> None:
        try:
            with self.conn:
                row = self.conn.execute(
                    "SELECT list_id FROM todo_items WHERE id = ?", (item_id,)
                ).fetchone()
                if row is None:
                    raise NotFoundError(f"No item with id {item_id}")
                self.conn.execute("DELETE FROM todo_items WHERE id = ?", (item_id,))
                self._renumber("todo_items", "list_id = ?", (row["list_id"],))
        except sqlite3.Error as e:
            raise StorageError(f"Could not delete item: {e}") from e
        logger.debug("Deleted item %s", item_id)

    def reorder_item(self, item_id: int, direction: Direction) -> bool:
        return self._swap("todo_items", item_id, direction, "list_id")

    # -- snapshot --------------------------------------------------------

    def load_snapshot(self) -> List[TodoList]:
        """All lists in order, each with its items attached."""
        lists = self.list_lists()
        for lst in lists:
            lst.items = self.list_items(lst.id)
        return lists
