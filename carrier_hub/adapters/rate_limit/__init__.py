"""Outbound per-carrier quota adapters.

This package provides a small abstraction layer so the service can start with
an in-process counter and later migrate to a shared store without changing
the carrier clients or the admin API.
"""

from carrier_hub.adapters.rate_limit.base import AbstractProviderQuota, Admission, QuotaSnapshot
from carrier_hub.adapters.rate_limit.in_memory import InMemoryProviderQuota

__all__ = [
    "AbstractProviderQuota",
    "Admission",
    "InMemoryProviderQuota",
    "QuotaSnapshot",
]
