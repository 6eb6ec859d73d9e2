"""
WebSocket Gateway Components.

Organized into domain-specific modules:
- core/       - Foundational components (constants, context)
- connection/ - Presence registry, channel groups, heartbeat
- broadcast/  - Tenant isolation filter
- auth/       - Authentication strategies
- endpoints/  - WebSocket endpoints (base, mixins, handlers)
- events/     - Hotel event catalog and notification fan-out
- data/       - Data access (user repository)

Import from the specific submodules.
"""
