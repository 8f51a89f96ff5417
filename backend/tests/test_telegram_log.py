"""Tests for the in-memory Telegram interaction log."""

import logging

import pytest

from app.storage import DEFAULT_CAPACITY, TelegramLogStore


class TestTelegramLogStore:
    """Bounded FIFO behaviour and filtering."""

    def test_default_capacity(self):
        assert TelegramLogStore().capacity == DEFAULT_CAPACITY == 1000

    def test_capacity_must_be_positive(self):
        with pytest.raises(ValueError):
            TelegramLogStore(capacity=0)

    def test_log_returns_entry(self):
        store = TelegramLogStore()
        entry = store.log("info", 12345, "Command received", command="/help", metadata={"a": 1})

        assert entry.chat_id == "12345"
        assert entry.command == "/help"
        assert entry.metadata == {"a": 1}
        assert entry.timestamp.tzinfo is not None
        assert len(store) == 1

    def test_oldest_entry_dropped_first(self):
        store = TelegramLogStore(capacity=3)
        for i in range(5):
            store.log("info", 1, f"message {i}")

        assert len(store) == 3
        assert [e.message for e in store.recent()] == ["message 2", "message 3", "message 4"]

    def test_recent_limit(self):
        store = TelegramLogStore()
        for i in range(10):
            store.log("debug", 1, f"m{i}")

        assert [e.message for e in store.recent(2)] == ["m8", "m9"]
        assert store.recent(0) == []

    def test_for_chat(self):
        store = TelegramLogStore()
        store.log("info", 1, "a")
        store.log("info", "2", "b")
        store.log("error", 2, "c")
        store.log("info", 1, "d")

        assert [e.message for e in store.for_chat(2)] == ["b", "c"]
        assert [e.message for e in store.for_chat("1", limit=1)] == ["d"]
        assert store.for_chat(1, limit=0) == []

    def test_clear(self):
        store = TelegramLogStore()
        store.log("warning", 1, "x")
        store.clear()

        assert len(store) == 0
        assert store.recent() == []

    def test_entries_are_mirrored_to_logging(self, caplog):
        store = TelegramLogStore()
        with caplog.at_level(logging.DEBUG, logger="app.storage.telegram_log"):
            store.log("error", 9, "Send failed", command="/otc")

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert "[TELEGRAM ERROR] Send failed (chat=9, command=/otc)" in record.getMessage()

    def test_wire_format(self):
        entry = TelegramLogStore().log("info", 1, "x")
        data = entry.model_dump(by_alias=True, mode="json")

        assert data["chatId"] == "1"
        assert data["level"] == "info"
        assert set(data) == {"timestamp", "level", "chatId", "message", "command", "response", "metadata"}
