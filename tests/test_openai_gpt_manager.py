from types import SimpleNamespace

import openai
import pytest

from llm_chat.app.errors import CompletionError
from llm_chat.infrastructure.data_models import Message
from llm_chat.infrastructure.openai_gpt_manager import OpenAIChat


class FakeCompletions:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.requests = []

    def create(self, **kwargs):
        self.requests.append(kwargs)
        if self.error is not None:
            raise self.error
        return self.response


def _client(completions):
    return SimpleNamespace(chat=SimpleNamespace(completions=completions))


def _response(*contents):
    return SimpleNamespace(
        model="gpt-3.5-turbo-0125",
        choices=[
            SimpleNamespace(
                index=i,
                message=SimpleNamespace(role="assistant", content=content),
                finish_reason="stop",
            )
            for i, content in enumerate(contents)
        ],
        usage=SimpleNamespace(prompt_tokens=12, completion_tokens=3, total_tokens=15),
    )


def test_missing_api_key():
    with pytest.raises(ValueError, match="OPENAI_API_KEY"):
        OpenAIChat(model="gpt-3.5-turbo", api_key=None)


def test_generate_sends_model_and_messages():
    completions = FakeCompletions(response=_response("4"))
    chat = OpenAIChat(model="gpt-3.5-turbo", api_key=None, client=_client(completions))

    result = chat.generate([Message("system", "Be terse."), Message("user", "2+2?")])

    assert completions.requests == [
        {
            "model": "gpt-3.5-turbo",
            "messages": [
                {"role": "system", "content": "Be terse."},
                {"role": "user", "content": "2+2?"},
            ],
        }
    ]
    assert result["content"] == "4"
    assert result["role"] == "assistant"
    assert result["model_version"] == "gpt-3.5-turbo-0125"
    assert result["usage"]["total_tokens"] == 15


def test_generate_uses_first_choice():
    completions = FakeCompletions(response=_response("first", "second"))
    chat = OpenAIChat(model="gpt-3.5-turbo", api_key=None, client=_client(completions))

    assert chat.generate([Message("user", "hi")])["content"] == "first"


def test_generate_without_choices():
    response = _response()
    chat = OpenAIChat(
        model="gpt-3.5-turbo", api_key=None, client=_client(FakeCompletions(response=response))
    )

    with pytest.raises(CompletionError, match="no choices"):
        chat.generate([Message("user", "hi")])


def test_api_errors_are_not_retried():
    completions = FakeCompletions(error=openai.OpenAIError("Connection error."))
    chat = OpenAIChat(model="gpt-3.5-turbo", api_key=None, client=_client(completions))

    with pytest.raises(CompletionError, match="completion API errored"):
        chat.generate([Message("user", "hi")])

    assert len(completions.requests) == 1
