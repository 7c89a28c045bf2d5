"""In-memory fixed-window quota per carrier.

Notes:
- Per-process only: running multiple workers multiplies the effective limit.
- Thread-safe: each provider has its own lock, so carriers never contend.
- Fixed window, not sliding: up to 2x max_requests can pass around a window
  boundary. Good enough to stay under partner-side throttling.
"""

from __future__ import annotations

import logging
import math
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Mapping

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota, Admission, QuotaSnapshot
from carrier_hub.core.errors import ConfigurationInvalid

logger = logging.getLogger(__name__)


@dataclass
class _ProviderState:
    max_requests: int
    window_ms: int
    window_start_ms: float
    count: int = 0
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def window_end_ms(self) -> float:
        return self.window_start_ms + self.window_ms

    def roll_over_if_stale(self, now_ms: float) -> None:
        # Caller must hold self.lock
        if now_ms >= self.window_end_ms():
            self.window_start_ms = now_ms
            self.count = 0


def _validate_config(provider_id: str, max_requests: int, window_ms: int) -> None:
    for name, value in (("max_requests", max_requests), ("window_ms", window_ms)):
        if isinstance(value, bool) or not isinstance(value, int) or value < 1:
            raise ConfigurationInvalid(
                code="quota_config_invalid",
                message=f"{name} must be a positive integer",
                details={
                    "provider": provider_id,
                    "max_requests": max_requests,
                    "window_ms": window_ms,
                },
            )


class InMemoryProviderQuota(AbstractProviderQuota):
    """Fixed-window request counter kept separately for every carrier.

    State for a provider is created the first time it is referenced, using the
    configured override for that provider or the defaults. It lives for the
    lifetime of the instance; there is no module-level singleton, so tests and
    the application factory each build their own.
    """

    def __init__(
        self,
        *,
        default_max_requests: int = 60,
        default_window_ms: int = 60_000,
        overrides: Mapping[str, tuple[int, int]] | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize the quota registry.

        Args:
            default_max_requests: Quota for providers without an override.
            default_window_ms: Window length for providers without an override.
            overrides: Mapping of provider id to ``(max_requests, window_ms)``.
            clock: Time source returning seconds (monotonic by default).

        Raises:
            ConfigurationInvalid: If any limit or window is not positive.
        """
        _validate_config("*", default_max_requests, default_window_ms)
        self._default = (default_max_requests, default_window_ms)
        self._overrides: dict[str, tuple[int, int]] = {}
        for provider_id, (max_requests, window_ms) in (overrides or {}).items():
            key = self._key(provider_id)
            _validate_config(key, max_requests, window_ms)
            self._overrides[key] = (max_requests, window_ms)

        self._clock = clock
        # Guards the mapping only; counters are guarded by each state's lock
        self._registry_lock = threading.Lock()
        self._states: dict[str, _ProviderState] = {}

    @staticmethod
    def _key(provider_id: str) -> str:
        if not provider_id or not provider_id.strip():
            raise ValueError("provider_id must be a non-empty string")
        return provider_id.strip().lower()

    def _now_ms(self) -> float:
        return self._clock() * 1000.0

    def _state(self, key: str) -> _ProviderState:
        state = self._states.get(key)
        if state is not None:
            return state
        with self._registry_lock:
            state = self._states.get(key)
            if state is None:
                max_requests, window_ms = self._overrides.get(key, self._default)
                state = _ProviderState(
                    max_requests=max_requests,
                    window_ms=window_ms,
                    window_start_ms=self._now_ms(),
                )
                self._states[key] = state
            return state

    def admit(self, provider_id: str) -> Admission:
        """Admit one call for the provider or report how long to wait.

        Args:
            provider_id: Carrier name, case-insensitive.

        Returns:
            Admission.allow() when counted, Admission.deny(retry_after_ms)
            once the window's quota is used up.
        """
        key = self._key(provider_id)
        state = self._state(key)

        with state.lock:
            now_ms = self._now_ms()
            state.roll_over_if_stale(now_ms)

            if state.count < state.max_requests:
                state.count += 1
                return Admission.allow()

            retry_after_ms = math.ceil(state.window_end_ms() - now_ms)
            limit = state.max_requests

        logger.warning(
            "quota.denied",
            extra={
                "provider": key,
                "limit": limit,
                "retry_after_ms": retry_after_ms,
            },
        )
        return Admission.deny(retry_after_ms)

    def remaining(self, provider_id: str) -> int:
        state = self._state(self._key(provider_id))
        with state.lock:
            state.roll_over_if_stale(self._now_ms())
            return state.max_requests - state.count

    def time_until_reset(self, provider_id: str) -> int:
        state = self._state(self._key(provider_id))
        with state.lock:
            return max(0, math.ceil(state.window_end_ms() - self._now_ms()))

    def configure(self, provider_id: str, max_requests: int, window_ms: int) -> None:
        """Replace a provider's quota, effective immediately.

        The counting window restarts at the time of the change, so the new
        limit is never blended with calls counted under the old one.

        Raises:
            ConfigurationInvalid: If max_requests or window_ms is not positive.
        """
        key = self._key(provider_id)
        _validate_config(key, max_requests, window_ms)

        state = self._state(key)
        with state.lock:
            state.max_requests = max_requests
            state.window_ms = window_ms
            state.window_start_ms = self._now_ms()
            state.count = 0

        logger.info(
            "quota.configured",
            extra={"provider": key, "limit": max_requests, "window_ms": window_ms},
        )

    def snapshot(self, provider_id: str) -> QuotaSnapshot:
        key = self._key(provider_id)
        state = self._state(key)
        with state.lock:
            now_ms = self._now_ms()
            state.roll_over_if_stale(now_ms)
            return QuotaSnapshot(
                provider_id=key,
                max_requests=state.max_requests,
                window_ms=state.window_ms,
                remaining=state.max_requests - state.count,
                time_until_reset_ms=max(0, math.ceil(state.window_end_ms() - now_ms)),
            )

    def providers(self) -> list[str]:
        with self._registry_lock:
            return sorted(set(self._overrides) | set(self._states))
