"""Tests for the command line interface."""

import argparse
import json
import logging
import sys
from unittest.mock import AsyncMock, patch

import pytest

from journalsync.__main__ import (
    JSONFormatter,
    cmd_add,
    cmd_delete,
    cmd_list,
    cmd_pull,
    cmd_push,
    cmd_status,
)
from journalsync.errors import TransportError
from journalsync.store import LocalStore
from journalsync.sync import HttpTransport

from conftest import collection_bytes, make_entry, wire_entry


@pytest.fixture
def db_path(tmp_path, monkeypatch):
    """Point the CLI at a temporary database and remote."""
    path = tmp_path / "journal.db"
    monkeypatch.setenv("JOURNALSYNC_DB_PATH", str(path))
    monkeypatch.setenv("JOURNALSYNC_REMOTE_URL", "https://journal.example.com/entries")
    return path


def args(**kwargs):
    return argparse.Namespace(config=None, **kwargs)


def open_store(path):
    store = LocalStore(path)
    store.connect()
    return store


class TestCommands:
    """Tests for the CLI command handlers."""

    @pytest.mark.asyncio
    async def test_pull(self, db_path, capsys):
        payload = collection_bytes(wire_entry("id1", "One"), wire_entry("id2", "Two"))

        with patch.object(HttpTransport, "get", new=AsyncMock(return_value=payload)) as get:
            code = await cmd_pull(args())

        assert code == 0
        get.assert_awaited_once_with("https://journal.example.com/entries.json")
        assert "created 2" in capsys.readouterr().out

        store = open_store(db_path)
        assert store.get_stats()["entries_count"] == 2
        store.close()

    @pytest.mark.asyncio
    async def test_pull_failure(self, db_path, capsys):
        with patch.object(
            HttpTransport, "get", new=AsyncMock(side_effect=TransportError("refused"))
        ):
            code = await cmd_pull(args())

        assert code == 1
        assert "transport_error" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_add_saves_and_pushes(self, db_path):
        with patch.object(HttpTransport, "put", new=AsyncMock()) as put:
            code = await cmd_add(args(title="Morning", body="Coffee", mood="happy"))

        assert code == 0
        put.assert_awaited_once()

        store = open_store(db_path)
        (entry,) = store.list_entries()
        assert entry.title == "Morning"
        store.close()

    @pytest.mark.asyncio
    async def test_push_unknown_identifier(self, db_path, capsys):
        code = await cmd_push(args(identifier="nope"))

        assert code == 1
        assert "No local entry" in capsys.readouterr().err

    @pytest.mark.asyncio
    async def test_push_existing(self, db_path):
        store = open_store(db_path)
        store.save(make_entry(identifier="id1"))
        store.close()

        with patch.object(HttpTransport, "put", new=AsyncMock()) as put:
            code = await cmd_push(args(identifier="id1"))

        assert code == 0
        assert put.await_args[0][0] == "https://journal.example.com/entries/id1.json"

    @pytest.mark.asyncio
    async def test_delete_removes_local_after_remote(self, db_path):
        store = open_store(db_path)
        store.save(make_entry(identifier="id1"))
        store.close()

        with patch.object(HttpTransport, "delete", new=AsyncMock()):
            code = await cmd_delete(args(identifier="id1"))

        assert code == 0
        store = open_store(db_path)
        assert store.get("id1") is None
        store.close()

    @pytest.mark.asyncio
    async def test_delete_keeps_local_on_failure(self, db_path):
        store = open_store(db_path)
        store.save(make_entry(identifier="id1"))
        store.close()

        with patch.object(
            HttpTransport, "delete", new=AsyncMock(side_effect=TransportError("HTTP 500"))
        ):
            code = await cmd_delete(args(identifier="id1"))

        assert code == 1
        store = open_store(db_path)
        assert store.get("id1") is not None
        store.close()

    @pytest.mark.asyncio
    async def test_list_json(self, db_path, capsys):
        store = open_store(db_path)
        store.save(make_entry(identifier="id1", title="Listed"))
        store.close()

        code = await cmd_list(args(limit=None, json=True, offline=True))

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data[0]["title"] == "Listed"

    @pytest.mark.asyncio
    async def test_list_empty(self, db_path, capsys):
        assert await cmd_list(args(limit=None, json=False, offline=True)) == 0
        assert "No entries" in capsys.readouterr().out

    @pytest.mark.asyncio
    async def test_list_refreshes_from_remote(self, db_path, capsys):
        payload = collection_bytes(wire_entry("id1", "Pulled"))

        with patch.object(HttpTransport, "get", new=AsyncMock(return_value=payload)) as get:
            code = await cmd_list(args(limit=None, json=True, offline=False))

        assert code == 0
        get.assert_awaited_once_with("https://journal.example.com/entries.json")
        data = json.loads(capsys.readouterr().out)
        assert [e["identifier"] for e in data] == ["id1"]

    @pytest.mark.asyncio
    async def test_list_skips_refresh_when_pull_on_start_disabled(self, db_path, monkeypatch):
        monkeypatch.setenv("JOURNALSYNC_PULL_ON_START", "false")

        with patch.object(HttpTransport, "get", new=AsyncMock()) as get:
            code = await cmd_list(args(limit=None, json=False, offline=False))

        assert code == 0
        get.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_list_failed_refresh_shows_local(self, db_path, capsys):
        store = open_store(db_path)
        store.save(make_entry(identifier="id1", title="Local"))
        store.close()

        with patch.object(
            HttpTransport, "get", new=AsyncMock(side_effect=TransportError("refused"))
        ):
            code = await cmd_list(args(limit=None, json=False, offline=False))

        assert code == 0
        captured = capsys.readouterr()
        assert "could not refresh" in captured.err
        assert "Local" in captured.out

    def test_status_json(self, db_path, capsys):
        code = cmd_status(args(json=True))

        assert code == 0
        data = json.loads(capsys.readouterr().out)
        assert data["remote"]["base_url"] == "https://journal.example.com/entries"
        assert data["store"]["entries_count"] == 0


class TestJSONFormatter:
    """Tests for structured log output."""

    def test_format(self):
        record = logging.LogRecord(
            "journalsync.sync", logging.INFO, __file__, 1, "pulled %d", (3,), None
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "info"
        assert data["logger"] == "journalsync.sync"
        assert data["msg"] == "pulled 3"
        assert data["thread"] == record.threadName
        assert "exc" not in data

    def test_format_with_exception(self):
        try:
            raise ValueError("bad row")
        except ValueError:
            exc_info = sys.exc_info()
        record = logging.LogRecord(
            "journalsync.store", logging.ERROR, __file__, 1, "lookup failed", (), exc_info
        )

        data = json.loads(JSONFormatter().format(record))

        assert data["level"] == "error"
        assert "ValueError: bad row" in data["exc"]
