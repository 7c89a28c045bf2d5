"""Provider quota interfaces.

Carrier clients depend on this abstraction (not the concrete implementation)
so the in-process counter can later be swapped for a shared store (e.g.,
Redis) without touching the callers.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class Admission:
    """Outcome of an admission check against a provider quota.

    A denial is an expected result under load, not an error.

    Attributes:
        allowed: Whether the call may be issued now.
        retry_after_ms: Time until the current window ends (0 when allowed).
    """

    allowed: bool
    retry_after_ms: int = 0

    @classmethod
    def allow(cls) -> "Admission":
        return cls(allowed=True)

    @classmethod
    def deny(cls, retry_after_ms: int) -> "Admission":
        return cls(allowed=False, retry_after_ms=max(0, retry_after_ms))


@dataclass(frozen=True)
class QuotaSnapshot:
    """Read-only view of one provider's quota, for the admin surface."""

    provider_id: str
    max_requests: int
    window_ms: int
    remaining: int
    time_until_reset_ms: int


class AbstractProviderQuota(ABC):
    """Interface for per-provider request quotas."""

    @abstractmethod
    def admit(self, provider_id: str) -> Admission:
        """Count one call against ``provider_id`` if its quota allows it."""
        raise NotImplementedError

    @abstractmethod
    def remaining(self, provider_id: str) -> int:
        """Calls still admissible in the current window. Does not consume."""
        raise NotImplementedError

    @abstractmethod
    def time_until_reset(self, provider_id: str) -> int:
        """Milliseconds until the current window for ``provider_id`` ends."""
        raise NotImplementedError

    @abstractmethod
    def configure(self, provider_id: str, max_requests: int, window_ms: int) -> None:
        """Replace the quota for ``provider_id`` and start a fresh window."""
        raise NotImplementedError

    @abstractmethod
    def snapshot(self, provider_id: str) -> QuotaSnapshot:
        """Consistent view of configuration and live counters."""
        raise NotImplementedError

    @abstractmethod
    def providers(self) -> list[str]:
        """Provider ids that are configured or have been referenced."""
        raise NotImplementedError
