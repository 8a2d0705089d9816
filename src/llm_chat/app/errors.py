"""
Errors raised by the chat pipeline.

Core code raises these; `app.main` is the only place that turns them into
diagnostics and exit codes.
"""


class ChatError(Exception):
    """Base class for every failure the CLI reports to the user."""


class InputError(ChatError):
    """The question could not be read, or was empty."""


class PersistenceError(ChatError):
    """A read from or write to the session store failed."""


class SessionNotFoundError(ChatError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Session not found: {name}")
        self.name = name


class SessionExistsError(ChatError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Session already exists: {name}")
        self.name = name


class CompletionError(ChatError):
    """The completion API call failed or returned nothing usable."""
