"""Terminal choice presenter for the interactive fix loop.

Renders a numbered menu and reads the operator's answer. An empty answer or
``q`` cancels the choice, which the fix loop counts as skipped.
"""

from typing import Callable, Optional, Sequence

import typer

from reflib_contracts import FixAction, FixActionType

CANCEL_ANSWERS = {"", "q", "quit"}


class TerminalChoicePresenter:
    """Numbered-menu presenter built on ``typer.prompt``."""

    def __init__(
        self,
        prompt: Callable[..., str] = typer.prompt,
        echo: Callable[..., None] = typer.echo,
    ):
        self._prompt = prompt
        self._echo = echo

    async def present_choice(
        self, message: str, options: Sequence[FixAction]
    ) -> Optional[FixActionType]:
        self._echo(message)
        for index, option in enumerate(options, start=1):
            self._echo(f"  {index}) {option.label}")

        while True:
            answer = self._prompt(
                "Select an action (empty to cancel)", default="", show_default=False
            )
            answer = str(answer).strip().lower()
            if answer in CANCEL_ANSWERS:
                return None
            if answer.isdigit() and 1 <= int(answer) <= len(options):
                return options[int(answer) - 1].type
            self._echo(f"Invalid choice: {answer}. Enter 1-{len(options)}.", err=True)
