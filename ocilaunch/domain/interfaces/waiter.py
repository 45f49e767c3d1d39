"""Interface for the "too many requests" waiter.

After the provider answers a creation request with 429, the waiter is armed
and refuses further creation attempts until its cooldown has elapsed. The
backing store (disk, shared cache...) is an implementation detail.
"""

import abc


class TooManyRequestsWaiter(abc.ABC):
    """Abstract Base Class for the rate-limit backoff gate."""

    @abc.abstractmethod
    def is_configured(self) -> bool:
        """Returns True if the waiter should gate creation calls at all."""
        pass

    @abc.abstractmethod
    def is_too_early(self) -> bool:
        """Returns True while armed and the cooldown has not elapsed."""
        pass

    @abc.abstractmethod
    def seconds_remaining(self) -> int:
        """Seconds left in the cooldown window (0 when not armed)."""
        pass

    @abc.abstractmethod
    def enable(self) -> None:
        """Arms the waiter, stamping the current time."""
        pass

    @abc.abstractmethod
    def remove(self) -> None:
        """Clears the armed state. Must never raise."""
        pass


class NullWaiter(TooManyRequestsWaiter):
    """Waiter that is never configured: every gate lets the call through."""

    def is_configured(self) -> bool:
        return False

    def is_too_early(self) -> bool:
        return False

    def seconds_remaining(self) -> int:
        return 0

    def enable(self) -> None:
        pass

    def remove(self) -> None:
        pass
