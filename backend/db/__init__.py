"""Database layer package.

Public re-exports so callers can write::

    from backend.db import get_connection, init_db
    from backend.db import repositories, visualizations
"""

from backend.db.connection import get_connection
from backend.db.migrations import init_db
from backend.db import repositories, visualizations

__all__ = ["get_connection", "init_db", "repositories", "visualizations"]
