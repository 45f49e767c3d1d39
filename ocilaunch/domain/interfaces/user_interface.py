"""Interface for interacting with the user (output only).

Defines the contract for displaying results, errors, warnings and tables,
allowing different UI implementations (e.g., rich console, plain logs).
"""

import abc
from typing import Any, List, Sequence


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_output(self, output: str, **kwargs: Any) -> None:
        """Displays standard output to the user.

        Args:
            output: The string to display.
            **kwargs: Additional arguments for formatting (e.g., title, style).
        """
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user.

        Args:
            error_message: The error message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user.

        Args:
            warning_message: The warning message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user.

        Args:
            info_message: The informational message string.
            **kwargs: Additional arguments for formatting.
        """
        pass

    @abc.abstractmethod
    def display_table(
        self, title: str, columns: Sequence[str], rows: List[Sequence[Any]]
    ) -> None:
        """Displays tabular data.

        Args:
            title: Table title.
            columns: Column headers.
            rows: One sequence of cell values per row.
        """
        pass
