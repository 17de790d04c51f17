"""
Database handle used by the Puzzle Craft stores.

Wraps the Flask-SQLAlchemy extension so stores receive their persistence
dependency explicitly instead of reaching for a module-level connection.
The handle owns the reconnect policy: after a disconnect-class error the
engine pool is disposed and the next checkout opens a fresh connection.
"""
import logging
from typing import Dict, Any

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, OperationalError, SQLAlchemyError

logger = logging.getLogger(__name__)


class DatabaseHandle:
    """
    Lazily bound access to the application database.

    Usage:
        from puzzlecraft.extensions import database

        database.session.add(record)
        database.commit()
    """

    def __init__(self, sqlalchemy_ext):
        self._db = sqlalchemy_ext

    @property
    def session(self):
        """Session scoped to the current app context."""
        return self._db.session

    @property
    def engine(self):
        return self._db.engine

    def commit(self) -> None:
        self._db.session.commit()

    def rollback(self) -> None:
        try:
            self._db.session.rollback()
        except SQLAlchemyError as e:
            logger.warning(f'Rollback failed: {e}')

    def handle_error(self, error: Exception) -> None:
        """
        Reset session state after a persistence failure.

        Always rolls back the current transaction. Disconnect-class errors
        additionally dispose the pool so stale connections are not reused.
        """
        self.rollback()
        if self.is_disconnect(error):
            logger.warning(f'Database connection lost, resetting pool: {error}')
            self.reset()

    @staticmethod
    def is_disconnect(error: Exception) -> bool:
        if isinstance(error, DBAPIError) and error.connection_invalidated:
            return True
        return isinstance(error, OperationalError)

    def reset(self) -> None:
        """Dispose every pooled connection; the next query reconnects."""
        self._db.session.remove()
        self._db.engine.dispose()

    def ping(self) -> bool:
        """Run a trivial query to check the database is reachable."""
        try:
            self._db.session.execute(text('SELECT 1'))
            return True
        except SQLAlchemyError as e:
            logger.error(f'Database ping failed: {e}')
            self.handle_error(e)
            return False

    def status(self) -> Dict[str, Any]:
        """Connection status summary for the health endpoint."""
        url = self._db.engine.url
        connected = self.ping()
        return {
            'state': 'connected' if connected else 'disconnected',
            'dialect': url.get_backend_name(),
            'database': url.database,
        }
