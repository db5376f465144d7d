from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

import mysql.connector
from mysql.connector import pooling

logger = logging.getLogger(__name__)


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_size: int = 5
    connection_timeout: int = 30

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config["host"]),
            port=int(db_config.get("port", 3306)),
            user=str(db_config["user"]),
            password=str(db_config["password"]),
            database=str(db_config["database"]),
            pool_size=int(db_config.get("pool_size", 5)),
            connection_timeout=int(db_config.get("connection_timeout", 30)),
        )


class DatabaseConnection:
    """Data-access handle passed explicitly to every repository.

    Opened once at process start (creates the connection pool) and closed at
    shutdown. Each repository operation borrows a pooled connection and
    returns it when done.
    """

    def __init__(self, config: DBConfig):
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None

    @property
    def is_open(self) -> bool:
        return self._pool is not None

    def open(self) -> None:
        if self._pool is not None:
            return
        self._pool = pooling.MySQLConnectionPool(
            pool_name=f"etms_{self._config.database}",
            pool_size=int(self._config.pool_size),
            host=self._config.host,
            port=int(self._config.port),
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
            connection_timeout=int(self._config.connection_timeout),
        )
        logger.info(
            "database pool opened %s@%s:%s/%s size=%s",
            self._config.user,
            self._config.host,
            self._config.port,
            self._config.database,
            self._config.pool_size,
        )

    def close(self) -> None:
        if self._pool is None:
            return
        pool, self._pool = self._pool, None
        # closes every idle connection held by the pool
        closed = pool._remove_connections()
        logger.info("database pool closed (%s connections)", closed)

    def connect(self):
        if self._pool is None:
            raise RuntimeError("DatabaseConnection is not open")
        return self._pool.get_connection()

    def ping(self) -> bool:
        try:
            conn = self.connect()
        except (mysql.connector.Error, RuntimeError):
            return False
        try:
            cur = conn.cursor()
            cur.execute("SELECT 1")
            cur.fetchall()
            cur.close()
            return True
        except mysql.connector.Error:
            return False
        finally:
            conn.close()
