"""
Shared module for the hotel real-time gateway.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging and security audit trail

- shared.security: Authentication
  - auth.py: JWT signing and verification

- shared.infrastructure: Persistence and tracing
  - db.py: SQLAlchemy engine and sessions
  - correlation.py: Correlation IDs for log records

- shared.models: Hotel and User ORM models

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging

IMPORT EXAMPLES:
    from shared.config.settings import settings
    from shared.config.logging import get_logger
    from shared.security.auth import sign_jwt, verify_jwt
    from shared.infrastructure.db import get_db_context
"""
