"""Domain Events related to control-plane API calls and backoff.

Examples include events for when calls are deferred by the waiter, fail,
succeed, or arm the waiter after a 429.
"""

from dataclasses import dataclass, field
import time
from typing import Optional


@dataclass
class DomainEvent:
    """Base class for domain events."""
    pass


# --- Specific API Events ---

@dataclass
class ApiCallInitiated(DomainEvent):
    """Event triggered when a signed API call is about to be made."""
    method: str
    url: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallSucceeded(DomainEvent):
    """Event triggered when an API call returns a 2xx status."""
    method: str
    url: str
    status_code: int
    latency_ms: float
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallFailed(DomainEvent):
    """Event triggered when an API call returns a non-2xx status."""
    method: str
    url: str
    status_code: int
    error_message: str
    timestamp: float = field(default_factory=time.time)


@dataclass
class ApiCallDeferred(DomainEvent):
    """Event triggered when the waiter refuses a creation call."""
    endpoint: str
    wait_time_seconds: int
    timestamp: float = field(default_factory=time.time)


@dataclass
class WaiterArmed(DomainEvent):
    """Event triggered when a rate-limit response arms the waiter."""
    endpoint: str
    status_code: int
    reason: Optional[str] = None
    timestamp: float = field(default_factory=time.time)
