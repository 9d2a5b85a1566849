"""Cache module for in-flight request coalescing."""

from addonsync.application.cache.request_coalescer import (
    CoalescedOperation,
    RequestCoalescer,
    get_health_coalescer,
    get_manifest_coalescer,
)

__all__ = [
    "CoalescedOperation",
    "RequestCoalescer",
    "get_health_coalescer",
    "get_manifest_coalescer",
]
