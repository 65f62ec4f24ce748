"""Interface for presenting cache command results to the user.

Allows the command handler to stay independent of the console library.
"""

import abc
from typing import Any, Mapping, Optional


class UserInterface(abc.ABC):
    """Abstract Base Class for user interaction."""

    @abc.abstractmethod
    def display_value(self, key: str, value: Optional[bytes], **kwargs: Any) -> None:
        """Displays a single cached value (None for a miss)."""
        pass

    @abc.abstractmethod
    def display_mapping(self, values: Mapping[str, Optional[bytes]], **kwargs: Any) -> None:
        """Displays several key/value results, e.g. as a table."""
        pass

    @abc.abstractmethod
    def display_error(self, error_message: str, **kwargs: Any) -> None:
        """Displays an error message to the user."""
        pass

    @abc.abstractmethod
    def display_warning(self, warning_message: str, **kwargs: Any) -> None:
        """Displays a warning message to the user."""
        pass

    @abc.abstractmethod
    def display_info(self, info_message: str, **kwargs: Any) -> None:
        """Displays an informational message to the user."""
        pass
