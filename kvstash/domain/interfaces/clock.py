"""Interface for the time source used to compute and check expirations."""

import abc


class Clock(abc.ABC):
    """Abstract Base Class for clocks."""

    @abc.abstractmethod
    def now(self) -> int:
        """Returns the current Unix time in whole seconds."""
        pass
