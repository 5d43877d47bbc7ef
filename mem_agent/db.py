"""
PostgreSQL writer for memory metrics.

Expected table:

    CREATE TABLE memory_metrics (
        timestamp   TIMESTAMPTZ NOT NULL,
        namespace   TEXT NOT NULL,
        metric_name TEXT NOT NULL,
        unit        TEXT NOT NULL,
        value       DOUBLE PRECISION NOT NULL,
        dimensions  JSONB
    );
"""

import json
from contextlib import contextmanager
from typing import List

import psycopg2
from psycopg2.extras import execute_batch
from psycopg2.pool import SimpleConnectionPool

from mem_agent.dimensions import dimensions_as_dict
from mem_agent.errors import ConfigError

INSERT_SQL = """
    INSERT INTO memory_metrics (
        timestamp, namespace, metric_name, unit, value, dimensions
    ) VALUES (
        %s, %s, %s, %s, %s, %s
    )
"""


class PostgreSQLWriter:
    """Writes metric batches to PostgreSQL with connection pooling"""

    def __init__(self, database_url: str, min_connections: int = 1, max_connections: int = 2):
        try:
            self.pool = SimpleConnectionPool(
                min_connections,
                max_connections,
                database_url
            )
        except psycopg2.Error as e:
            raise ConfigError(f"Could not connect to PostgreSQL: {e}", stage='credentials') from e

    @contextmanager
    def get_connection(self):
        """Get a connection from the pool"""
        conn = self.pool.getconn()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            self.pool.putconn(conn)

    def submit_batch(self, namespace: str, records: List) -> None:
        """Insert all records of a batch in one transaction"""
        if not records:
            return

        values = [
            (
                r.timestamp, namespace, r.name, r.unit.value, r.value,
                json.dumps(dimensions_as_dict(r.dimensions))
            )
            for r in records
        ]

        with self.get_connection() as conn:
            with conn.cursor() as cur:
                execute_batch(cur, INSERT_SQL, values)

    def close(self):
        """Close all connections in the pool"""
        self.pool.closeall()
