"""
Broadcasting components.

Multi-tenant isolation for outbound events.
"""

from ws_gateway.components.broadcast.tenant_filter import TenantFilter, TenantRegistry

__all__ = [
    "TenantFilter",
    "TenantRegistry",
]
