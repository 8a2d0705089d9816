import os
import shlex
import subprocess
import sys
import tempfile
from collections.abc import Sequence
from typing import TextIO

from llm_chat.app.errors import InputError

DEFAULT_EDITOR = "vi"


def read_from_editor(editor: str | None = None) -> str:
    """
    Open the user's editor on an empty temporary file and return what was saved.

    Args:
        editor: Editor command line; defaults to $VISUAL, then $EDITOR, then vi.

    Raises:
        InputError: If the editor cannot be started or exits with an error.
    """
    command = editor or os.getenv("VISUAL") or os.getenv("EDITOR") or DEFAULT_EDITOR

    with tempfile.NamedTemporaryFile(mode="w+", suffix=".md", delete=False) as tmp:
        path = tmp.name

    try:
        try:
            result = subprocess.run([*shlex.split(command), path])
        except OSError as e:
            raise InputError(f"failed to launch editor {command!r}: {e}") from e
        if result.returncode != 0:
            raise InputError(f"editor {command!r} exited with status {result.returncode}")

        with open(path, encoding="utf-8") as f:
            return f.read()
    finally:
        os.unlink(path)


def read_question(
    words: Sequence[str] | None = None,
    stdin: TextIO | None = None,
    editor: str | None = None,
) -> str:
    """
    Read the user's question.

    Sources, first match wins: the words given on the command line; piped
    stdin; the user's editor when stdin is a terminal.

    Args:
        words: Positional command-line words, joined with single spaces.
        stdin: Stream to read when no words are given (defaults to sys.stdin).
        editor: Editor override for interactive input.

    Returns:
        The question with surrounding whitespace removed.

    Raises:
        InputError: If the input cannot be read or is empty.
    """
    stream = stdin if stdin is not None else sys.stdin

    if words:
        text = " ".join(words)
    elif not stream.isatty():
        try:
            text = stream.read()
        except (OSError, UnicodeDecodeError) as e:
            raise InputError(f"failed to read input: {e}") from e
    else:
        text = read_from_editor(editor)

    question = text.strip()
    if not question:
        raise InputError("Aborted.")
    return question
