"""Engine-specific connection drivers."""

from typing import Optional

from dal.engines.base import EngineConnection, EngineDriver
from dal.errors import InvalidConfiguration
from dal.target import Engine


def get_engine_driver(engine: Engine, ssl_ca_path: Optional[str] = None) -> EngineDriver:
    """Return the driver that knows how to connect to ``engine``."""
    if engine is Engine.MYSQL:
        from dal.engines.mysql import MysqlDriver

        return MysqlDriver(ssl_ca_path=ssl_ca_path)
    if engine is Engine.POSTGRES:
        from dal.engines.postgres import PostgresDriver

        return PostgresDriver(ssl_ca_path=ssl_ca_path)
    raise InvalidConfiguration(f"Invalid database engine specified: '{engine}'")


__all__ = ["EngineConnection", "EngineDriver", "get_engine_driver"]
