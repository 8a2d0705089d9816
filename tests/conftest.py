from typing import Any

import pytest
from sqlalchemy import create_engine
from sqlalchemy.pool import StaticPool

from llm_chat.app.config import ChatSettings
from llm_chat.app.errors import CompletionError, PersistenceError
from llm_chat.infrastructure.data_models import Message, StoredMessage, utcnow
from llm_chat.infrastructure.database_manager import build_database_manager
from llm_chat.services.session_service import SessionStore


class FakeClient:
    """Completion client that records every request and answers with a fixed reply."""

    def __init__(self, reply: str = "4") -> None:
        self.reply = reply
        self.calls: list[list[Message]] = []

    def generate(self, messages: list[Message], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(list(messages))
        return {
            "content": self.reply,
            "role": "assistant",
            "model_version": "fake-model",
            "finish_reason": "stop",
            "usage": {"prompt_tokens": 1, "completion_tokens": 1, "total_tokens": 2},
        }


class FailingClient(FakeClient):
    def generate(self, messages: list[Message], **kwargs: Any) -> dict[str, Any]:
        self.calls.append(list(messages))
        raise CompletionError("completion API errored: 500 Internal Server Error")


class RecordingStore:
    """Message store that keeps writes in memory."""

    def __init__(self) -> None:
        self.writes: list[StoredMessage] = []

    def add_message(self, session_id: int, role: str, content: str) -> StoredMessage:
        message = StoredMessage(
            id=len(self.writes) + 1,
            session_id=session_id,
            role=role,
            content=content,
            created_at=utcnow(),
        )
        self.writes.append(message)
        return message


class FailingWriteStore(RecordingStore):
    """Message store whose writes fail for one role."""

    def __init__(self, failing_role: str = "assistant") -> None:
        super().__init__()
        self.failing_role = failing_role

    def add_message(self, session_id: int, role: str, content: str) -> StoredMessage:
        if role == self.failing_role:
            raise PersistenceError("Database error: disk I/O error")
        return super().add_message(session_id, role, content)


@pytest.fixture
def database():
    engine = create_engine(
        "sqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    manager = build_database_manager(engine=engine)
    yield manager
    manager.close()


@pytest.fixture
def store(database):
    return SessionStore(database)


@pytest.fixture
def settings(tmp_path):
    return ChatSettings(
        model="gpt-3.5-turbo",
        database_url=f"sqlite:///{tmp_path / 'chat.db'}",
        default_session="default",
        log_level="WARNING",
        logs_dir=str(tmp_path / "logs"),
        openai_api_key="sk-test",
    )


@pytest.fixture
def fake_client():
    return FakeClient()


@pytest.fixture
def failing_client():
    return FailingClient()


@pytest.fixture
def recording_store():
    return RecordingStore()


@pytest.fixture
def failing_write_store():
    return FailingWriteStore()
