"""judo command-line interface."""

import argparse
import logging
import os
import sys
from typing import List, Optional

from . import __version__
from .config import DatabaseRegistry
from .editing import validate_text
from .errors import JudoError
from .storage import Storage

logger = logging.getLogger(__name__)


def open_storage(args: argparse.Namespace) -> Storage:
    return args.registry.open(args.db)


# -- dbs ---------------------------------------------------------------------


def cmd_dbs_show(args: argparse.Namespace) -> None:
    for db in args.registry.list_databases():
        flag = " (default)" if db.is_default else ""
        print(f"{db.name}{flag}  {db.connection_str}")


def cmd_dbs_add(args: argparse.Namespace) -> None:
    locator = f"sqlite:{os.path.abspath(args.path)}" if args.path else None
    entry = args.registry.add_database(args.name, locator, set_default=args.set_default)
    print(f"Added database: {entry.name}{' (default)' if entry.is_default else ''}")


def cmd_dbs_default(args: argparse.Namespace) -> None:
    args.registry.set_default(args.name)
    print(f"Default database: {args.name}")


def cmd_dbs_delete(args: argparse.Namespace) -> None:
    args.registry.remove_database(args.name)
    print(f"Removed database: {args.name}")


# -- lists -------------------------------------------------------------------


def cmd_lists_show(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        lists = storage.load_snapshot()
    if not lists:
        print("(no lists yet)")
        return
    for lst in lists:
        done = sum(1 for item in lst.items if item.is_done)
        print(f"{lst.id:>4}. {lst.name}  ({done}/{len(lst.items)} done)")


def cmd_lists_add(args: argparse.Namespace) -> None:
    name = validate_text(args.name, "List name")
    with open_storage(args) as storage:
        list_id = storage.create_list(name)
    print(f"Added list {list_id}: {name}")


def cmd_lists_modify(args: argparse.Namespace) -> None:
    name = validate_text(args.name, "List name")
    with open_storage(args) as storage:
        storage.rename_list(args.id, name)
    print(f"Renamed list {args.id}: {name}")


def cmd_lists_delete(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        storage.delete_list(args.id)
    print(f"Deleted list {args.id} and its items.")


def cmd_lists_move(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        moved = storage.reorder_list(args.id, args.direction)
    if moved:
        print(f"Moved list {args.id} {args.direction}.")
    else:
        print(f"List {args.id} is already at the {'top' if args.direction == 'up' else 'bottom'}.")


# -- items -------------------------------------------------------------------


def cmd_items_show(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        lst = storage.get_list(args.list_id)
        items = storage.list_items(lst.id)
    if args.pending:
        items = [item for item in items if not item.is_done]
    elif args.done:
        items = [item for item in items if item.is_done]
    print(lst.name)
    if not items:
        print("(no items)")
        return
    for item in items:
        marker = "[x]" if item.is_done else "[ ]"
        print(f"{item.id:>4}. {marker} {item.name}")


def cmd_items_add(args: argparse.Namespace) -> None:
    text = validate_text(args.text, "Item description")
    with open_storage(args) as storage:
        item_id = storage.create_item(args.list_id, text)
    print(f"Added item {item_id}: {text}")


def cmd_items_modify(args: argparse.Namespace) -> None:
    text = validate_text(args.text, "Item description")
    with open_storage(args) as storage:
        storage.update_item(args.id, name=text)
    print(f"Edited item {args.id}.")


def cmd_items_done(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        is_done = storage.toggle_item(args.id)
    print(f"Item {args.id} marked {'done' if is_done else 'not done'}.")


def cmd_items_delete(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        storage.delete_item(args.id)
    print(f"Deleted item {args.id}.")


def cmd_items_move(args: argparse.Namespace) -> None:
    with open_storage(args) as storage:
        moved = storage.reorder_item(args.id, args.direction)
    if moved:
        print(f"Moved item {args.id} {args.direction}.")
    else:
        print(f"Item {args.id} is already at the {'top' if args.direction == 'up' else 'bottom'}.")


def build_parser() -> argparse.ArgumentParser:
    """Build and return the argument parser."""
    p = argparse.ArgumentParser(
        prog="judo", description="Todo lists in the terminal, stored in SQLite."
    )
    p.add_argument("-V", "--version", action="version", version=f"%(prog)s {__version__}")
    p.add_argument("--config", help="Path to judo.toml (default: ~/.config/judo/judo.toml)")
    p.add_argument("--db", help="Database to use (default: the configured default)")
    p.add_argument("-v", "--verbose", action="store_true", help="Debug logging on stderr")
    p.add_argument("--log-file", help="Write log records to this file")
    sub = p.add_subparsers(dest="cmd")

    s_help = sub.add_parser("help", help="Show help for judo or one of its commands")
    s_help.add_argument("topic", nargs="?", choices=["dbs", "lists", "items"])

    # dbs
    s_dbs = sub.add_parser("dbs", help="Manage the known databases")
    dbs = s_dbs.add_subparsers(dest="action", required=True)

    d_show = dbs.add_parser("show", help="List databases")
    d_show.set_defaults(func=cmd_dbs_show)

    d_add = dbs.add_parser("add", help="Create and register a database")
    d_add.add_argument("name")
    d_add.add_argument("--path", help="Database file (default: <data dir>/NAME.db)")
    d_add.add_argument("--set-default", action="store_true", help="Make it the default")
    d_add.set_defaults(func=cmd_dbs_add)

    d_default = dbs.add_parser("default", help="Set the default database")
    d_default.add_argument("name")
    d_default.set_defaults(func=cmd_dbs_default)

    d_delete = dbs.add_parser("delete", help="Forget a database (the file is kept)")
    d_delete.add_argument("name")
    d_delete.set_defaults(func=cmd_dbs_delete)

    # lists
    s_lists = sub.add_parser("lists", help="Manage todo lists")
    lists = s_lists.add_subparsers(dest="action", required=True)

    l_show = lists.add_parser("show", help="Show lists")
    l_show.set_defaults(func=cmd_lists_show)

    l_add = lists.add_parser("add", help="Add a list")
    l_add.add_argument("name", help="List name, quoted if it has spaces")
    l_add.set_defaults(func=cmd_lists_add)

    l_modify = lists.add_parser("modify", help="Rename a list")
    l_modify.add_argument("id", type=int, help="List id from `lists show`")
    l_modify.add_argument("name", help="New name")
    l_modify.set_defaults(func=cmd_lists_modify)

    l_delete = lists.add_parser("delete", help="Delete a list and its items")
    l_delete.add_argument("id", type=int)
    l_delete.set_defaults(func=cmd_lists_delete)

    l_move = lists.add_parser("move", help="Move a list one position up or down")
    l_move.add_argument("id", type=int)
    l_move.add_argument("direction", choices=["up", "down"])
    l_move.set_defaults(func=cmd_lists_move)

    # items
    s_items = sub.add_parser("items", help="Manage the items of a list")
    items = s_items.add_subparsers(dest="action", required=True)

    i_show = items.add_parser("show", help="Show the items of a list")
    i_show.add_argument("list_id", type=int)
    which = i_show.add_mutually_exclusive_group()
    which.add_argument("--pending", action="store_true", help="Only items not done")
    which.add_argument("--done", action="store_true", help="Only completed items")
    i_show.set_defaults(func=cmd_items_show)

    i_add = items.add_parser("add", help="Append an item to a list")
    i_add.add_argument("list_id", type=int)
    i_add.add_argument("text", help="Item text, quoted if it has spaces")
    i_add.set_defaults(func=cmd_items_add)

    i_modify = items.add_parser("modify", help="Edit item text")
    i_modify.add_argument("id", type=int)
    i_modify.add_argument("text")
    i_modify.set_defaults(func=cmd_items_modify)

    i_done = items.add_parser("done", help="Toggle completion of an item")
    i_done.add_argument("id", type=int)
    i_done.set_defaults(func=cmd_items_done)

    i_delete = items.add_parser("delete", help="Delete an item")
    i_delete.add_argument("id", type=int)
    i_delete.set_defaults(func=cmd_items_delete)

    i_move = items.add_parser("move", help="Move an item one position up or down")
    i_move.add_argument("id", type=int)
    i_move.add_argument("direction", choices=["up", "down"])
    i_move.set_defaults(func=cmd_items_move)

    p.set_defaults(subparsers={"dbs": s_dbs, "lists": s_lists, "items": s_items})
    return p


def setup_logging(args: argparse.Namespace, interactive: bool) -> None:
    """stderr logging for subcommands; the TUI only logs to --log-file."""
    root = logging.getLogger("judo")
    for old in list(root.handlers):
        root.removeHandler(old)
        old.close()
    root.setLevel(logging.DEBUG if args.verbose or args.log_file else logging.WARNING)
    fmt = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    if args.log_file:
        handler: logging.Handler = logging.FileHandler(args.log_file, encoding="utf-8")
    elif interactive:
        handler = logging.NullHandler()
    else:
        handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(fmt)
    root.addHandler(handler)


def main(argv: Optional[List[str]] = None) -> None:
    """CLI entry point. Launches the TUI if no subcommand is given."""
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.cmd == "help":
        target = args.subparsers.get(args.topic, parser)
        target.print_help()
        return
    setup_logging(args, interactive=args.cmd is None)

    try:
        args.registry = DatabaseRegistry.load(args.config)
        if args.cmd is None:
            from .tui import main as tui_main

            tui_main(args.registry, args.db)
        else:
            args.func(args)
    except JudoError as e:
        logger.debug("Command failed", exc_info=True)
        sys.exit(f"judo: error: {e}")


if __name__ == "__main__":
    main()
