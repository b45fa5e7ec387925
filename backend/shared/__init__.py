"""
Shared module for common utilities used by the POS API and the CLI.

STRUCTURE:
- shared.config: Configuration
  - settings.py: Environment config (Pydantic)
  - logging.py: Structured logging
  - constants.py: Order/table statuses, roles, limits

- shared.infrastructure: Database and messaging
  - db.py: SQLAlchemy engine/sessions, safe_commit()
  - events/: Redis pub/sub change notifications, circuit breaker
  - correlation.py: Request correlation ids

- shared.security: Staff PIN hashing (bcrypt)

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Input sanitizing
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, TableStatus
    from shared.utils.exceptions import NotFoundError, ConflictError
"""
