import logging
from collections.abc import Callable, Sequence
from contextlib import AbstractContextManager
from dataclasses import dataclass
from typing import Any, Protocol

from llm_chat.app.config import ChatSettings
from llm_chat.app.errors import InputError
from llm_chat.app.logging import log_completion
from llm_chat.infrastructure.data_models import (
    ROLE_ASSISTANT,
    ROLE_SYSTEM,
    ROLE_USER,
    Message,
    SessionSnapshot,
    StoredMessage,
    utcnow,
)
from llm_chat.infrastructure.openai_gpt_manager import CompletionResult, OpenAIChat
from llm_chat.services.renderer_service import no_progress

logger = logging.getLogger("llm-chat")


class CompletionClient(Protocol):
    def generate(self, messages: list[Message], **kwargs: Any) -> CompletionResult: ...


class MessageStore(Protocol):
    def add_message(self, session_id: int, role: str, content: str) -> StoredMessage: ...


class _HasRoleAndContent(Protocol):
    @property
    def role(self) -> str: ...

    @property
    def content(self) -> str: ...


ProgressFactory = Callable[[], AbstractContextManager[Any]]


@dataclass(frozen=True)
class AskResult:
    """Outcome of one question: both sides of the exchange and what the API reported."""

    question: StoredMessage
    response: StoredMessage
    completion: CompletionResult
    persisted: bool


def build_client(settings: ChatSettings) -> OpenAIChat:
    return OpenAIChat(model=settings.model, api_key=settings.openai_api_key)


def assemble_messages(
    prior: Sequence[_HasRoleAndContent], hint: str, question: str
) -> list[Message]:
    """
    Arrange the messages for the API in the following order:

      1. The session history, oldest first
      2. The system (role) hint, even when empty
      3. The user's question

    The API reads the messages from oldest to newest when building context,
    so the hint and question must come last.
    """
    messages = [Message(role=m.role, content=m.content) for m in prior]
    messages.append(Message(role=ROLE_SYSTEM, content=hint))
    messages.append(Message(role=ROLE_USER, content=question))
    return messages


def _unsaved(session_id: int, role: str, content: str) -> StoredMessage:
    return StoredMessage(
        id=None, session_id=session_id, role=role, content=content, created_at=utcnow()
    )


def ask_question(
    question: str,
    session: SessionSnapshot,
    *,
    client: CompletionClient,
    store: MessageStore,
    ephemeral: bool = False,
    progress: ProgressFactory = no_progress,
) -> AskResult:
    """
    Send a question with the session's history and hint, and store the exchange.

    Unless `ephemeral` is set, the question is stored before the API call and
    the response after it, so a failed call leaves only the question behind.

    Args:
        question: The user's question; must not be blank.
        session: The session the question belongs to, with its history.
        client: The completion client.
        store: Where the question and response are written.
        ephemeral: Send and return the exchange without storing it.
        progress: Context manager factory wrapped around the API call.

    Returns:
        AskResult with the question and response messages.

    Raises:
        InputError: If the question is blank.
        PersistenceError: If either write fails.
        CompletionError: If the API call fails.
    """
    question = question.strip()
    if not question:
        raise InputError("Aborted.")

    # Save the user's message unless the question is a one-off
    if ephemeral:
        user_message = _unsaved(session.id, ROLE_USER, question)
    else:
        user_message = store.add_message(session.id, ROLE_USER, question)

    messages = assemble_messages(session.messages, session.hint, question)
    logger.info(f"Sending {len(messages)} messages for session {session.name}")

    with progress():
        completion = client.generate(messages)
    log_completion(completion, logger)

    # Save the response unless the question is a one-off
    content = completion["content"]
    if ephemeral:
        response = _unsaved(session.id, ROLE_ASSISTANT, content)
    else:
        response = store.add_message(session.id, ROLE_ASSISTANT, content)

    return AskResult(
        question=user_message,
        response=response,
        completion=completion,
        persisted=not ephemeral,
    )
