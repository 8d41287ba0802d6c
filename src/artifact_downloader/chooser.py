# src/artifact_downloader/chooser.py

import sys
from typing import Any, List, Protocol

from pick import pick

from artifact_downloader.exceptions import SelectionError
from artifact_downloader.models import ChoiceOption


class Chooser(Protocol):
    """Something that can pick one option out of several."""

    def choose(self, options: List[ChoiceOption]) -> Any: ...


class PickChooser:
    """
    Interactive chooser backed by a `pick` terminal menu.

    Parameters:
        title (str): Prompt shown above the options.
    """

    def __init__(self, title: str = "Select an artifact to download:") -> None:
        self.title = title

    def choose(self, options: List[ChoiceOption]) -> Any:
        """
        Present option labels and return the selected option's value.

        Raises:
            SelectionError: If there are no options or stdin is not a terminal.
        """
        if not options:
            raise SelectionError("No options to choose from")
        if not sys.stdin.isatty():
            raise SelectionError(
                "Multiple artifact types available and no terminal to choose from",
                details="Pass --artifact-type to select one",
            )

        labels = [option.label for option in options]
        _, index = pick(labels, self.title, indicator="*")
        return options[index].value
