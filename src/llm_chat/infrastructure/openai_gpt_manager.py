from typing import Any, TypedDict, cast

from openai import OpenAI, OpenAIError

from llm_chat.app.errors import CompletionError
from llm_chat.infrastructure.data_models import Message


class CompletionResult(TypedDict):
    content: str
    role: str
    model_version: str | None
    finish_reason: str | None
    usage: dict[str, int]


class OpenAIChat:
    """
    A client for OpenAI's chat completions endpoint.

    One call per `generate()`; errors are not retried. Whatever timeout the
    underlying openai client defaults to is the only one applied.
    """

    def __init__(self, model: str, api_key: str | None, client: OpenAI | None = None) -> None:
        """
        Initialize the OpenAI chat client.

        Args:
            model: The OpenAI model to use (e.g., 'gpt-3.5-turbo')
            api_key: The OpenAI API key, taken from settings
            client: A pre-built client (tests); when given, `api_key` is not checked

        Raises:
            ValueError: If no client is given and the API key is missing
        """
        if client is None:
            if not api_key:
                raise ValueError("OPENAI_API_KEY not found in environment")
            client = OpenAI(api_key=api_key)

        self.client: OpenAI = client
        self.model = model

    def generate(self, messages: list[Message], **kwargs: Any) -> CompletionResult:
        """
        Generate a response from the OpenAI model.

        Args:
            messages: List of Message objects to send to the model, oldest first
            **kwargs: Additional parameters passed through to the API

        Returns:
            CompletionResult with the first choice's content and role, the model
            version reported by the API, the finish reason and token usage.

        Raises:
            CompletionError: If the API call fails or returns no choices
        """
        # Format messages to OpenAI format
        input_messages = [{"role": m.role, "content": m.content} for m in messages]

        try:
            resp = self.client.chat.completions.create(
                model=self.model,
                messages=cast(Any, input_messages),
                **kwargs,
            )
        except OpenAIError as e:
            raise CompletionError(f"completion API errored: {e}") from e

        choices = getattr(resp, "choices", None) or []
        if not choices:
            raise CompletionError(f"completion API returned no choices for {self.model}")

        first = choices[0]
        message = getattr(first, "message", None)
        content = getattr(message, "content", None) or ""

        # Extract usage information
        u = getattr(resp, "usage", None)
        usage = {
            "prompt_tokens": getattr(u, "prompt_tokens", 0) or 0,
            "completion_tokens": getattr(u, "completion_tokens", 0) or 0,
            "total_tokens": getattr(u, "total_tokens", 0) or 0,
        }

        return {
            "content": content,
            "role": getattr(message, "role", None) or "assistant",
            "model_version": getattr(resp, "model", None),
            "finish_reason": getattr(first, "finish_reason", None),
            "usage": usage,
        }
