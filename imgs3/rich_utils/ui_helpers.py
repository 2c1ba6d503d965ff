import os
import sys
from typing import Optional

from rich.console import Console
from rich.prompt import Confirm


def is_ci_environment():
    return (
        os.getenv('CI') is not None or
        os.getenv('GITHUB_ACTIONS') is not None or
        not sys.stdout.isatty()
    )


def get_console() -> Console:
    """Detect environment and create console."""
    is_interactive = not is_ci_environment()

    if not is_interactive:
        # CI/automated environment - no colors, no interactive elements
        console = Console(force_terminal=False, no_color=True)
        return console
    else:
        # Interactive terminal - full Rich capabilities
        console = Console()
        return console


class ConsolePrompt:
    """Yes/no confirmation surface. Answers 'no' when nobody can be asked."""

    def __init__(self, console: Optional[Console] = None, assume_yes: bool = False):
        self.console = console or get_console()
        self.assume_yes = assume_yes

    def _ask(self, question: str) -> bool:
        if self.assume_yes:
            return True
        if is_ci_environment():
            return False
        return Confirm.ask(question, console=self.console, default=False)

    def ask_retry(self, message: str) -> bool:
        self.console.print(f"❌ {message}", style="red")
        return self._ask("Retry?")

    def ask_yes_no(self, title: str, message: str) -> bool:
        self.console.print(f"[bold]{title}[/bold]")
        self.console.print(message)
        return self._ask(title)


class ConsoleNotifier:
    """Fire-and-forget message surface"""

    def __init__(self, console: Optional[Console] = None):
        self.console = console or get_console()

    def send_message(self, text: str) -> None:
        self.console.print(f"🔔 {text}", style="cyan")


class ConsoleClipboard:
    """Writes the copied text to stdout so it can be piped to a clipboard tool"""

    def __init__(self, stream=None):
        self.stream = stream or sys.stdout

    def set_text(self, text: str) -> None:
        self.stream.write(text + "\n")
        self.stream.flush()
