from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

import mysql.connector

CONNECT_TIMEOUT_SECONDS = 10


@dataclass
class DBConfig:
    host: str
    port: int
    user: str
    password: str
    database: str

    @classmethod
    def from_dict(cls, db_config: dict) -> "DBConfig":
        return cls(
            host=str(db_config.get("host", "localhost")),
            port=int(db_config.get("port", 3306)),
            user=str(db_config.get("user", "root")),
            password=str(db_config.get("password", "")),
            database=str(db_config.get("database", "office_attendance")),
        )

    def describe(self) -> str:
        return f"{self.user}@{self.host}:{self.port}/{self.database}"


class DatabaseConnection:
    """Process-wide factory for short-lived MySQL connections.

    Every repository call opens its own connection, so request threads and the
    nightly sweep thread never share one. Sessions are pinned to UTC because
    the DATETIME columns hold naive UTC values.
    """

    _instance: Optional["DatabaseConnection"] = None

    def __init__(self, config: DBConfig):
        self._config = config

    @property
    def config(self) -> DBConfig:
        return self._config

    @classmethod
    def get_instance(cls, config: DBConfig) -> "DatabaseConnection":
        if cls._instance is None:
            cls._instance = DatabaseConnection(config)
        return cls._instance

    def connect(self, *, with_database: bool = True):
        options = {
            "host": self._config.host,
            "port": int(self._config.port),
            "user": self._config.user,
            "password": self._config.password,
            "connection_timeout": CONNECT_TIMEOUT_SECONDS,
            "time_zone": "+00:00",
            "use_pure": True,
        }
        if with_database:
            options["database"] = self._config.database
        return mysql.connector.connect(**options)
