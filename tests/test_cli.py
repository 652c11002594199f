"""End-to-end tests of the command-line interface."""

import os

import pytest

from judo import __version__
from judo.cli import build_parser, main
from judo.config import DatabaseRegistry


@pytest.fixture
def judo(config_path, capsys):
    """Run the CLI against the temporary config and return its stdout."""

    def run(*argv):
        main(["--config", config_path, *argv])
        return capsys.readouterr().out

    return run


def test_version(capsys):
    with pytest.raises(SystemExit) as exc:
        main(["--version"])
    assert exc.value.code == 0
    assert __version__ in capsys.readouterr().out


def test_subcommand_requires_action(capsys):
    with pytest.raises(SystemExit) as exc:
        build_parser().parse_args(["lists"])
    assert exc.value.code == 2


def test_lists_and_items(judo):
    assert "(no lists yet)" in judo("lists", "show")
    assert "Added list 1: Groceries" in judo("lists", "add", "Groceries")
    judo("items", "add", "1", "Milk")
    judo("items", "add", "1", "Eggs")
    assert "marked done" in judo("items", "done", "1")

    out = judo("items", "show", "1")
    assert out.splitlines() == ["Groceries", "   1. [x] Milk", "   2. [ ] Eggs"]
    assert "Eggs" not in judo("items", "show", "1", "--done")
    assert "Milk" not in judo("items", "show", "1", "--pending")
    assert "(1/2 done)" in judo("lists", "show")


def test_modify_and_move(judo):
    judo("lists", "add", "A")
    judo("lists", "add", "B")
    judo("lists", "modify", "2", "Bee")
    assert "Moved list 2 up" in judo("lists", "move", "2", "up")
    out = judo("lists", "show").splitlines()
    assert out[0].endswith("Bee  (0/0 done)")

    judo("items", "add", "1", "first")
    judo("items", "add", "1", "second")
    assert "already at the top" in judo("items", "move", "1", "up")
    judo("items", "move", "2", "up")
    judo("items", "modify", "2", "SECOND")
    assert judo("items", "show", "1").splitlines()[1:] == ["   2. [ ] SECOND", "   1. [ ] first"]


def test_delete(judo):
    judo("lists", "add", "Home")
    judo("items", "add", "1", "Buy milk")
    judo("items", "delete", "1")
    assert "(no items)" in judo("items", "show", "1")
    judo("lists", "delete", "1")
    assert "(no lists yet)" in judo("lists", "show")


def test_empty_name_fails(judo):
    with pytest.raises(SystemExit) as exc:
        judo("lists", "add", "   ")
    assert "cannot be empty" in str(exc.value.code)


def test_missing_entity_fails(judo):
    with pytest.raises(SystemExit) as exc:
        judo("items", "done", "7")
    assert str(exc.value.code).startswith("judo: error:")


def test_dbs(judo):
    assert "dojo (default)" in judo("dbs", "show")
    judo("dbs", "add", "work")
    judo("dbs", "default", "work")
    lines = judo("dbs", "show").splitlines()
    assert [line.split()[0] for line in lines] == ["dojo", "work"]
    assert "(default)" in lines[1] and "(default)" not in lines[0]

    judo("--db", "work", "lists", "add", "Office")
    assert "Office" not in judo("--db", "dojo", "lists", "show")
    assert "Office" in judo("lists", "show")

    judo("dbs", "delete", "dojo")
    assert "dojo" not in judo("dbs", "show")


def test_unknown_db_fails(judo):
    with pytest.raises(SystemExit) as exc:
        judo("--db", "nope", "lists", "show")
    assert "nope" in str(exc.value.code)


def test_broken_config_fails(config_path, tmp_path):
    os.makedirs(os.path.dirname(config_path), exist_ok=True)
    with open(config_path, "w", encoding="utf-8") as f:
        f.write("this is not toml")
    with pytest.raises(SystemExit) as exc:
        main(["--config", config_path, "dbs", "show"])
    assert "judo: error:" in str(exc.value.code)


def test_help_subcommand(config_path, capsys):
    main(["--config", config_path, "help"])
    out = capsys.readouterr().out
    assert out.startswith("usage: judo")
    assert "dbs" in out and "items" in out
    assert not os.path.exists(config_path)


def test_help_for_one_command(capsys):
    main(["help", "items"])
    out = capsys.readouterr().out
    assert out.startswith("usage: judo items")
    assert "move" in out


def test_relative_db_path_is_stored_absolute(judo, config_path, tmp_path, monkeypatch):
    workdir = tmp_path / "work"
    workdir.mkdir()
    monkeypatch.chdir(workdir)
    judo("dbs", "add", "rel", "--path", "rel.db")

    monkeypatch.chdir(tmp_path)
    (entry,) = [db for db in DatabaseRegistry.load(config_path).list_databases() if db.name == "rel"]
    assert entry.connection_str == f"sqlite:{workdir / 'rel.db'}"
    assert "(no lists yet)" in judo("--db", "rel", "lists", "show")
