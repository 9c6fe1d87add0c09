# chat.py
#
# Description: the interactive terminal front end for the Cohere chat client.

"""
This module provides the stateful command-line chat interface.

Plain input is sent as a multi-turn chat message; lines starting with a
colon are commands (e.g. :w, :u, :m, :h, :q). Every outcome, including
failures, is rendered as a panel and control returns to the prompt.
"""

# --------------------------------------------------------------------------- #
# imports
# --------------------------------------------------------------------------- #
from __future__ import annotations  # allow postponed evaluation of annotations
import logging                       # for logging messages
from typing import Callable, Dict, Optional, Tuple  # for type definitions

from rich.console import Console     # terminal output
from rich.panel import Panel         # bordered message boxes
from rich.text import Text           # literal (unstyled) panel content

from core import ChatSession, TurnResult
from errors import CohereChatError, ErrorKind, UploadRejected
from model_switch import SUPPORTED_MODELS_HELP
from transcript_store import Role

# --------------------------------------------------------------------------- #
# constants and type definitions
# --------------------------------------------------------------------------- #
logger = logging.getLogger(__name__)  # module-level logger

CLI_VERSION = "1.1.0"

USER_BORDER = "#FFC8DD"       # pink, user messages
ASSISTANT_BORDER = "#D8B4FE"  # purple, assistant messages
ACCENT_BORDER = "#A78BFA"     # other boxes
NOTICE_STYLE = "#FFA500"
ERROR_STYLE = "#FF0000"
MAX_BOX_WIDTH = 80
MIN_BOX_WIDTH = 60

PROMPT = "Your message (or :w <query>, :u <file>, :m <model>, :h, :q): "

# failures whose raw diagnostics may be shown in debug mode
DIAGNOSTIC_KINDS = (ErrorKind.UNPARSEABLE_RESPONSE, ErrorKind.TRANSPORT_FAILURE)

CommandHandler = Callable[["ChatApplication", str], bool]  # returns False to stop the loop


# --------------------------------------------------------------------------- #
# command handlers
# --------------------------------------------------------------------------- #
def handle_quit(app: "ChatApplication", arg: str) -> bool:
    """Leave the chat loop."""
    app.console.print(Text("Goodbye!", style=ERROR_STYLE))
    return False


def handle_clear(app: "ChatApplication", arg: str) -> bool:
    """Clear the screen."""
    app.console.clear()
    return True


def handle_help(app: "ChatApplication", arg: str) -> bool:
    lines = ["Cohere Chat Commands:", ""]
    for _, usage, description in COMMANDS.values():
        lines.append(f"- {usage:<14} => {description}")
    lines += ["", "Type anything else for normal multi-turn conversation."]
    app.notice("\n".join(lines))
    return True


def handle_debug(app: "ChatApplication", arg: str) -> bool:
    enabled = app.session.toggle_debug()
    app.status(f"Debug mode turned {'ON' if enabled else 'OFF'}")
    return True


def handle_history(app: "ChatApplication", arg: str) -> bool:
    """Show the stored conversation."""
    turns = [t for t in app.session.store.snapshot() if t.role is not Role.SYSTEM]
    if not turns:
        app.status("No messages in history yet.")
        return True
    lines = []
    for turn in turns:
        speaker = "You" if turn.role is Role.USER else "Assistant"
        lines.append(f"{speaker}: {turn.content}")
    app.notice("\n".join(lines), title="Chat History")
    return True


def handle_info(app: "ChatApplication", arg: str) -> bool:
    with app.console.status(f"Fetching information about {app.session.profile.name}..."):
        info = app.session.describe_model()
    app.notice(
        "MODEL INFORMATION\n\n"
        f"API Name: {info.name}\n"
        f"Product Name: {info.display_name}\n\n"
        f"Model Self-Identification:\n\"{info.self_description}\"\n\n"
        f"Key Capabilities:\n{info.capabilities}\n\n"
        "Note: The API name may differ from how the model identifies itself internally."
    )
    return True


def handle_model(app: "ChatApplication", arg: str) -> bool:
    if not arg:
        app.error(f"Usage: :m <model>\n{SUPPORTED_MODELS_HELP}")
        return True
    previous = app.session.profile.name
    try:
        with app.console.status(f"Verifying {arg} is available..."):
            profile = app.session.switch_model(arg)
    except CohereChatError as e:
        logger.warning("Model switch failed", extra={"requested": arg, "error": str(e)})
        app.error(f"{e}\n{SUPPORTED_MODELS_HELP}")
        return True
    if profile.name != previous:
        app.status("Conversation history reset due to model change.")
    app.status(f"Model switched to {profile.name}")
    return True


def handle_upload(app: "ChatApplication", arg: str) -> bool:
    if not arg:
        app.error("Usage: :u <file>")
        return True
    try:
        uploaded = app.session.upload(arg)
    except UploadRejected as e:
        app.error(str(e))
        return True
    if uploaded.warning:
        app.status(uploaded.warning)
    app.notice(f"File {uploaded.path} uploaded. Snippet stored in conversation memory.")
    return True


def handle_web_search(app: "ChatApplication", arg: str) -> bool:
    if not arg:
        app.error("Usage: :w <query>")
        return True
    app.user_panel(f":w {arg}")
    with app.console.status(f"{app.session.profile.name} is thinking (web search)..."):
        result = app.session.web_search(arg)
    app.render_result(result)
    return True


# --------------------------------------------------------------------------- #
# command routing table
# --------------------------------------------------------------------------- #
COMMANDS: Dict[str, Tuple[CommandHandler, str, str]] = {
    ":w":       (handle_web_search, ":w <query>", "single-turn web search"),
    ":u":       (handle_upload,     ":u <file>",  "upload .pdf or .txt (<= 20MB)"),
    ":m":       (handle_model,      ":m <model>", "switch model (Command R+, Command A, Command R7B)"),
    ":i":       (handle_info,       ":i",         "show current model information"),
    ":d":       (handle_debug,      ":d",         "toggle debug mode"),
    ":c":       (handle_clear,      ":c",         "clear the screen"),
    ":history": (handle_history,    ":history",   "show the conversation history"),
    ":h":       (handle_help,       ":h",         "show this help message"),
    ":q":       (handle_quit,       ":q",         "quit"),
}


def split_command(user_input: str) -> Tuple[Optional[str], str]:
    """Return (command, argument) or (None, input) for plain messages."""
    if not user_input.startswith(":"):
        return None, user_input
    head, _, rest = user_input.partition(" ")
    head = head.lower()
    if head not in COMMANDS:
        return None, user_input
    return head, rest.strip()


# --------------------------------------------------------------------------- #
# main chat application class
# --------------------------------------------------------------------------- #
class ChatApplication:
    """Encapsulates the terminal loop around a ChatSession."""

    def __init__(self, session: ChatSession, console: Optional[Console] = None) -> None:
        self.session = session
        self.console = console or Console()
        logger.info("Chat application initialized.", extra={"model": session.profile.name})

    # ---- rendering -------------------------------------------------------- #
    @property
    def box_width(self) -> int:
        return min(self.console.width, MAX_BOX_WIDTH)

    def _panel(self, body: str, border: str, title: Optional[str] = None) -> None:
        self.console.print(
            Panel(Text(body), border_style=border, title=title, width=self.box_width, padding=(0, 1))
        )

    def user_panel(self, text: str) -> None:
        self._panel(f"You: {text}", USER_BORDER)

    def notice(self, text: str, title: Optional[str] = None) -> None:
        self._panel(text, ACCENT_BORDER, title)

    def status(self, text: str) -> None:
        self.console.print(Text(text, style=NOTICE_STYLE))

    def error(self, text: str) -> None:
        self.console.print(Text(text, style=ERROR_STYLE))

    def render_result(self, result: TurnResult) -> None:
        if result.ok:
            self._panel(f"{result.display_role}: {result.display_text}{result.citation_block}", ASSISTANT_BORDER)
            return
        failure = result.error
        message = result.display_text
        if self.session.debug and failure is not None and failure.detail and failure.kind in DIAGNOSTIC_KINDS:
            message += f". Raw response: {failure.detail}"
        self._panel(f"{result.display_role}: {message}", ACCENT_BORDER)

    # ---- loop ------------------------------------------------------------- #
    def welcome(self) -> None:
        if self.console.width < MIN_BOX_WIDTH:
            self.status("Warning: your terminal is narrow; resize to at least 60 columns for optimal display.")
        self.notice(
            f"Welcome to Cohere Chat! (v{CLI_VERSION})\n\n"
            f"Current model: {self.session.profile.name}\n\n"
            "Basic Commands:\n"
            "- :w <query>   => web search\n"
            "- :u <file>    => upload file\n"
            "- :m <model>   => switch model\n"
            "- :h           => show all commands\n"
            "- :q           => quit\n\n"
            "Type anything else for normal conversation."
        )

    def handle_input(self, user_input: str) -> bool:
        """Dispatch one line of input; returns False when the loop should stop."""
        user_input = user_input.strip()
        if not user_input:
            return handle_quit(self, "")

        command, arg = split_command(user_input)
        if command is not None:
            handler, _, _ = COMMANDS[command]
            return handler(self, arg)

        self.process_message(user_input)
        return True

    def process_message(self, text: str) -> None:
        self.user_panel(text)
        with self.console.status(f"{self.session.profile.name} is thinking..."):
            result = self.session.send_message(text)
        if not result.ok:
            logger.error(
                "Chat turn failed",
                extra={"kind": result.error.kind.value if result.error else None},
            )
        self.render_result(result)

    def run(self) -> None:
        """Start and manage the main chat loop."""
        self.welcome()
        while True:
            try:
                user_input = self.console.input(PROMPT)
            except (KeyboardInterrupt, EOFError):
                handle_quit(self, "")
                return
            try:
                keep_going = self.handle_input(user_input)
            except CohereChatError as e:
                # storage errors mid-session are reported, the loop carries on
                logger.exception("Command failed")
                self.error(str(e))
                keep_going = True
            if not keep_going:
                return
