"""
Shared module for common utilities used by the fulfillment service and CLI.

STRUCTURE:
- shared.infrastructure: Database and request plumbing
  - db.py: SQLAlchemy engine and sessions, safe_commit()
  - correlation.py: X-Request-ID middleware and log filter

- shared.config: Configuration
  - settings.py: Environment config (pydantic-settings)
  - logging.py: Structured logging
  - constants.py: Order statuses, packaging ids, points tables

- shared.utils: Utilities
  - exceptions.py: HTTP exceptions with auto-logging
  - validators.py: Input normalization
  - schemas.py: Shared Pydantic schemas

IMPORT EXAMPLES:
    from shared.infrastructure.db import get_db, safe_commit
    from shared.config.settings import settings
    from shared.config.constants import OrderStatus, Packaging
    from shared.utils.exceptions import NotFoundError, InvalidTransitionError
"""
