"""
API Tests: /memory endpoints, health, error mapping

Usage:
    python -m pytest tests/test_api.py -v
"""
import pytest
import sqlite3
import sys
from pathlib import Path

from fastapi.testclient import TestClient
from langchain_core.messages import AIMessage, ChatMessage, FunctionMessage

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

import api.main as api_main
from api.routes import memory as memory_routes
from assistant import AssistantWithMemory, langchain_invoker
from memory import MemoryProvider, SQLiteMemoryStore, message_to_json


class MockLLM:
    """Mock LLM answering with a fixed text."""

    def __init__(self, response="Mock LLM response"):
        self._response = response

    async def ainvoke(self, messages):
        return AIMessage(content=self._response)


class BrokenStore(SQLiteMemoryStore):
    async def load(self, conversation_id):
        raise sqlite3.OperationalError("database is locked")

    async def ping(self):
        raise sqlite3.OperationalError("database is locked")


@pytest.fixture
def store(tmp_path):
    return SQLiteMemoryStore(db_path=str(tmp_path / "memory.db"))


@pytest.fixture
def client(store, monkeypatch):
    provider = MemoryProvider(store, max_messages=100, trim_on_write=False)
    assistant = AssistantWithMemory(langchain_invoker(MockLLM("Hello from the assistant")), provider)
    monkeypatch.setattr(memory_routes, "_provider", provider)
    monkeypatch.setattr(memory_routes, "_assistant", assistant)
    monkeypatch.setattr(api_main, "memory_store", store)
    return TestClient(api_main.app)


class TestProcess:
    """POST /memory/process"""

    def test_returns_plain_text_reply(self, client):
        response = client.post("/memory/process", json={"memory_id": 42, "text_message": "Hi"})

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/plain")
        assert response.text == "Hello from the assistant"

    def test_accepts_camel_case_fields(self, client):
        response = client.post("/memory/process", json={"memoryId": 42, "textMessage": "Hi"})

        assert response.status_code == 200
        assert response.text == "Hello from the assistant"

    def test_rejects_empty_message(self, client):
        response = client.post("/memory/process", json={"memory_id": 42, "text_message": ""})
        assert response.status_code == 422

    def test_rejects_non_integer_memory_id(self, client):
        response = client.post("/memory/process", json={"memory_id": "abc", "text_message": "Hi"})
        assert response.status_code == 422


class TestHistory:
    """GET /memory/{id}/history, GET /memory/, DELETE /memory/{id}"""

    def test_history_after_exchange(self, client):
        client.post("/memory/process", json={"memory_id": 42, "text_message": "Hi"})

        response = client.get("/memory/42/history")

        assert response.status_code == 200
        data = response.json()
        assert data["memory_id"] == "42"
        assert data["total_messages"] == 2
        assert [(m["role"], m["content"]) for m in data["messages"]] == [
            ("user", "Hi"),
            ("assistant", "Hello from the assistant"),
        ]

    def test_history_limit_windows_messages(self, client):
        for text in ["one", "two"]:
            client.post("/memory/process", json={"memory_id": 7, "text_message": text})

        data = client.get("/memory/7/history", params={"limit": 1}).json()

        assert data["total_messages"] == 4
        assert [m["content"] for m in data["messages"]] == ["Hello from the assistant"]

    def test_unknown_conversation_has_empty_history(self, client):
        data = client.get("/memory/999/history").json()

        assert data["messages"] == []
        assert data["total_messages"] == 0

    def test_list_conversations(self, client):
        client.post("/memory/process", json={"memory_id": 1, "text_message": "a"})
        client.post("/memory/process", json={"memory_id": 2, "text_message": "b"})

        data = client.get("/memory/").json()

        assert data == {"memory_ids": ["1", "2"], "total": 2}

    def test_delete_conversation(self, client):
        client.post("/memory/process", json={"memory_id": 42, "text_message": "Hi"})

        response = client.delete("/memory/42")

        assert response.status_code == 200
        assert response.json()["deleted_messages"] == 2
        assert client.get("/memory/42/history").json()["messages"] == []

    def test_delete_unknown_conversation_is_ok(self, client):
        response = client.delete("/memory/999")

        assert response.status_code == 200
        assert response.json()["deleted_messages"] == 0


class TestErrors:
    """Exception handler mapping"""

    def test_corrupt_record_maps_to_serialization_error(self, client, store):
        import asyncio
        asyncio.run(store.append("42", ["{broken"]))

        response = client.get("/memory/42/history")

        assert response.status_code == 500
        assert response.json()["code"] == "SERIALIZATION_ERROR"

    def test_storage_failure_maps_to_503(self, tmp_path, monkeypatch):
        provider = MemoryProvider(BrokenStore(db_path=str(tmp_path / "x.db")), max_messages=10)
        monkeypatch.setattr(memory_routes, "_provider", provider)
        client = TestClient(api_main.app)

        response = client.get("/memory/1/history")

        assert response.status_code == 503
        assert response.json()["code"] == "STORAGE_ERROR"

    def test_unexpected_error_maps_to_500(self, store, monkeypatch):
        async def explode(context, new_message):
            raise RuntimeError("boom")

        provider = MemoryProvider(store, max_messages=10)
        monkeypatch.setattr(memory_routes, "_assistant", AssistantWithMemory(explode, provider))
        client = TestClient(api_main.app, raise_server_exceptions=False)

        response = client.post("/memory/process", json={"memory_id": 1, "text_message": "Hi"})

        assert response.status_code == 500
        assert response.json()["code"] == "INTERNAL_ERROR"


    def test_unreachable_database_path_maps_to_503(self, tmp_path, monkeypatch):
        blocker = tmp_path / "not-a-directory"
        blocker.write_text("")
        store = SQLiteMemoryStore(db_path=str(blocker / "sub" / "memory.db"))
        monkeypatch.setattr(memory_routes, "_provider", MemoryProvider(store, max_messages=10))
        client = TestClient(api_main.app)

        response = client.get("/memory/1/history")

        assert response.status_code == 503
        assert response.json()["code"] == "STORAGE_ERROR"

    def test_unknown_message_role_maps_to_serialization_error(self, client, store):
        import asyncio
        asyncio.run(store.append("42", [message_to_json(ChatMessage(role="moderator", content="x"))]))

        response = client.get("/memory/42/history")

        assert response.status_code == 500
        assert response.json()["code"] == "SERIALIZATION_ERROR"


class TestRoles:
    """Stored message types -> API roles"""

    def test_function_and_chat_messages_get_explicit_roles(self, client, store):
        import asyncio
        asyncio.run(store.append("42", [
            message_to_json(FunctionMessage(name="lookup", content="result")),
            message_to_json(ChatMessage(role="user", content="typed by hand")),
        ]))

        data = client.get("/memory/42/history").json()

        assert [(m["role"], m["content"]) for m in data["messages"]] == [
            ("tool", "result"),
            ("user", "typed by hand"),
        ]


class TestSystem:
    """Health and root endpoints"""

    def test_health_ok(self, client):
        data = client.get("/health").json()

        assert data["status"] == "healthy"
        assert data["services"]["memory"] is True

    def test_health_degraded_when_store_down(self, client, tmp_path, monkeypatch):
        monkeypatch.setattr(api_main, "memory_store", BrokenStore(db_path=str(tmp_path / "x.db")))

        data = client.get("/health").json()

        assert data["status"] == "degraded"
        assert data["services"]["memory"] is False

    def test_root(self, client):
        data = client.get("/").json()
        assert data["chat"] == "/memory/process"
