import argparse
import sys
from dataclasses import replace
from typing import TextIO

from rich.console import Console

from llm_chat.app.config import LOG_LEVELS, ChatSettings, get_settings
from llm_chat.app.errors import ChatError, InputError
from llm_chat.infrastructure.database_manager import DatabaseManager, build_database_manager
from llm_chat.infrastructure.platform_manager import create_logger
from llm_chat.services.input_service import read_question
from llm_chat.services.llm_service import CompletionClient, ask_question, build_client
from llm_chat.services.renderer_service import (
    progress,
    render_history,
    render_message,
    render_sessions,
)
from llm_chat.services.session_service import SessionStore


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """
    Parse command line arguments for the chat client.

    Returns:
        argparse.Namespace: Parsed arguments
    """
    parser = argparse.ArgumentParser(
        prog="llm-chat",
        description="Ask an LLM questions, keeping a per-session conversation history",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "--session",
        "-s",
        help="Session to use for this command instead of the active one",
    )
    parser.add_argument(
        "--model",
        "-m",
        help="Completion model to use (overrides LLM_CHAT_MODEL)",
    )
    parser.add_argument(
        "--log-level",
        "-l",
        choices=LOG_LEVELS,
        help="Set the logging level (overrides LLM_CHAT_LOG_LEVEL)",
    )

    commands = parser.add_subparsers(dest="command", required=True, metavar="COMMAND")

    # ask
    ask = commands.add_parser("ask", help="Ask a question in the current session")
    ask.add_argument(
        "words",
        nargs="*",
        help="The question; read from stdin or an editor when omitted",
    )
    ask.add_argument(
        "--forget",
        "-f",
        action="store_true",
        help="Do not save this question or its answer",
    )
    ask.set_defaults(handler=cmd_ask)

    # session ...
    session = commands.add_parser("session", help="Manage sessions")
    session_commands = session.add_subparsers(dest="session_command", required=True)

    session_new = session_commands.add_parser("new", help="Create a session")
    session_new.add_argument("name")
    session_new.add_argument("hint", nargs="?", default="", help="System hint for the session")
    session_new.set_defaults(handler=cmd_session_new)

    session_list = session_commands.add_parser("list", help="List sessions")
    session_list.set_defaults(handler=cmd_session_list)

    session_use = session_commands.add_parser("use", help="Make a session the active one")
    session_use.add_argument("name")
    session_use.set_defaults(handler=cmd_session_use)

    session_hint = session_commands.add_parser("hint", help="Replace a session's hint")
    session_hint.add_argument("name")
    session_hint.add_argument("hint")
    session_hint.set_defaults(handler=cmd_session_hint)

    session_rm = session_commands.add_parser("rm", help="Delete a session and its history")
    session_rm.add_argument("name")
    session_rm.set_defaults(handler=cmd_session_rm)

    # history ...
    history = commands.add_parser("history", help="Show or clear the current session's history")
    history_commands = history.add_subparsers(dest="history_command", required=True)

    history_show = history_commands.add_parser("show", help="Print the conversation")
    history_show.add_argument(
        "-n",
        type=int,
        default=None,
        dest="limit",
        help="Only show the last N messages",
    )
    history_show.set_defaults(handler=cmd_history_show)

    history_clear = history_commands.add_parser("clear", help="Delete the conversation")
    history_clear.set_defaults(handler=cmd_history_clear)

    return parser.parse_args(argv)


class Context:
    """What every command handler needs, built once in `main()`."""

    def __init__(
        self,
        settings: ChatSettings,
        store: SessionStore,
        console: Console,
        stdin: TextIO | None = None,
        client: CompletionClient | None = None,
    ) -> None:
        self.settings = settings
        self.store = store
        self.console = console
        self.stdin = stdin
        self.client = client

    def session_name(self, args: argparse.Namespace) -> str:
        if args.session:
            return args.session
        return self.store.get_active_session(self.settings.default_session).name


def cmd_ask(args: argparse.Namespace, ctx: Context) -> int:
    # Read and validate the question before touching the store or the network
    question = read_question(args.words, stdin=ctx.stdin)

    if args.session:
        session = ctx.store.get_session(args.session)
    else:
        session = ctx.store.get_active_session(ctx.settings.default_session)

    client = ctx.client or build_client(ctx.settings)
    result = ask_question(
        question,
        session,
        client=client,
        store=ctx.store,
        ephemeral=args.forget,
        progress=lambda: progress(ctx.console),
    )

    render_message(result.response, ctx.console)
    return 0


def cmd_session_new(args: argparse.Namespace, ctx: Context) -> int:
    ctx.store.create_session(args.name, args.hint)
    ctx.console.print(f"Created session {args.name}")
    return 0


def cmd_session_list(args: argparse.Namespace, ctx: Context) -> int:
    render_sessions(ctx.store.list_sessions(), ctx.console)
    return 0


def cmd_session_use(args: argparse.Namespace, ctx: Context) -> int:
    ctx.store.use_session(args.name)
    ctx.console.print(f"Using session {args.name}")
    return 0


def cmd_session_hint(args: argparse.Namespace, ctx: Context) -> int:
    ctx.store.set_hint(args.name, args.hint)
    ctx.console.print(f"Updated hint for session {args.name}")
    return 0


def cmd_session_rm(args: argparse.Namespace, ctx: Context) -> int:
    ctx.store.delete_session(args.name)
    ctx.console.print(f"Deleted session {args.name}")
    return 0


def cmd_history_show(args: argparse.Namespace, ctx: Context) -> int:
    if args.limit is not None and args.limit < 0:
        raise ValueError("-n must not be negative")
    render_history(ctx.store.history(ctx.session_name(args), args.limit), ctx.console)
    return 0


def cmd_history_clear(args: argparse.Namespace, ctx: Context) -> int:
    name = ctx.session_name(args)
    removed = ctx.store.clear_history(name)
    ctx.console.print(f"Removed {removed} messages from session {name}")
    return 0


def main(
    argv: list[str] | None = None,
    *,
    settings: ChatSettings | None = None,
    database: DatabaseManager | None = None,
    client: CompletionClient | None = None,
    stdin: TextIO | None = None,
    console: Console | None = None,
) -> int:
    """
    Main function to run the chat client from the command line.

    Every failure ends here: the diagnostic goes to stderr and the exit code
    is 1. The keyword arguments replace the real collaborators in tests.

    Returns:
        int: Exit code (0 for success, 1 for error)
    """
    args = parse_args(argv)

    # Read the configuration
    try:
        settings = settings or get_settings()
        if args.model:
            settings = replace(settings, model=args.model)
        if args.log_level:
            settings = replace(settings, log_level=args.log_level)
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    # Create logger with the configured log level
    logger = create_logger(
        log_level=settings.log_level, logger_name="llm-chat", logs_dir=settings.logs_dir
    )
    logger.info(f"Running command {args.command} with model {settings.model}")

    try:
        if database is None:
            database = build_database_manager(settings.database_url)
        ctx = Context(
            settings=settings,
            store=SessionStore(database),
            console=console if console is not None else Console(),
            stdin=stdin,
            client=client,
        )
        return args.handler(args, ctx)

    except InputError as e:
        logger.debug("Input rejected", exc_info=True)
        print(str(e), file=sys.stderr)
        return 1
    except (ChatError, ValueError) as e:
        logger.debug("Command failed", exc_info=True)
        print(f"Error: {e}", file=sys.stderr)
        return 1


def run() -> None:
    sys.exit(main())


if __name__ == "__main__":
    run()
