"""Interactive questions, answered by Typer or by defaults."""

import logging

import typer

logger = logging.getLogger(__name__)


class Prompter:
    """Ask the operator questions on the terminal.

    With assume_yes every question returns its default without reading
    input.

    Attributes:
        assume_yes: Take defaults instead of prompting.
    """

    def __init__(self, assume_yes: bool = False) -> None:
        self.assume_yes = assume_yes

    def ask(self, message: str, default: str = "") -> str:
        """Ask for a free-text value.

        Args:
            message: Question text.
            default: Value used for empty input and under assume_yes.

        Returns:
            The answer, stripped of surrounding whitespace.
        """
        if self.assume_yes:
            logger.debug("assume-yes: %s -> %s", message, default)
            return default
        answer: str = typer.prompt(message, default=default, show_default=bool(default))
        return answer.strip()

    def confirm(self, message: str, default: bool = False) -> bool:
        """Ask a yes/no question.

        Args:
            message: Question text.
            default: Answer used for empty input and under assume_yes.

        Returns:
            True for yes.
        """
        if self.assume_yes:
            logger.debug("assume-yes: %s -> %s", message, default)
            return default
        return typer.confirm(message, default=default)
