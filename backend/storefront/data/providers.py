import logging
import os
import time
from typing import Dict, Optional, Type

from sqlalchemy import text
from sqlalchemy.engine import URL, Engine, make_url
from sqlalchemy.exc import SQLAlchemyError

from .. import models
from ..database import Base, build_engine, make_session_factory
from ..errors import DatabaseCreationError, SchemaError
from ..schemas import DataProviderType, InstallRequest
from .settings_store import DataSettingsManager

logger = logging.getLogger(__name__)


class DataProvider:
    """Database operations the installer needs, for one provider kind.

    The connection string is always read from the settings store, so the
    provider sees whatever the installer just persisted.
    """

    kind: DataProviderType
    drivername: str = ""
    maintenance_database: Optional[str] = None
    create_retries = 10
    retry_delay = 1.0

    def __init__(self, settings_store: DataSettingsManager):
        self._settings_store = settings_store
        self._engine: Optional[Engine] = None
        self._engine_url: Optional[str] = None

    # ── connection strings ───────────────────────────────────────────────────
    def build_connection_string(self, request: InstallRequest) -> str:
        if not request.database_name or not request.server_name:
            return ""
        if not request.integrated_security and not request.username:
            return ""
        url = URL.create(
            self.drivername,
            username=None if request.integrated_security else request.username,
            password=None if request.integrated_security else (request.password or None),
            host=request.server_name,
            database=request.database_name,
            query=self._extra_query(request),
        )
        return url.render_as_string(hide_password=False)

    def _extra_query(self, request: InstallRequest) -> Dict[str, str]:
        return {}

    @property
    def connection_string(self) -> str:
        return self._settings_store.load().connection_string

    # ── engines / sessions ───────────────────────────────────────────────────
    def get_engine(self) -> Engine:
        conn_str = self.connection_string
        if self._engine is None or self._engine_url != conn_str:
            self.dispose()
            self._engine = build_engine(conn_str)
            self._engine_url = conn_str
        return self._engine

    def session_factory(self):
        return make_session_factory(self.get_engine())

    def dispose(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
        self._engine = None
        self._engine_url = None

    # ── database lifecycle ───────────────────────────────────────────────────
    def database_exists(self) -> bool:
        try:
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
            return True
        except SQLAlchemyError as e:
            logger.info("Database check failed: %s", e)
            return False

    def create_database(self, collation: Optional[str] = None) -> None:
        url = make_url(self.connection_string)
        database = url.database
        if not database:
            raise DatabaseCreationError("Connection string has no database name")
        server_engine = build_engine(
            url.set(database=self.maintenance_database).render_as_string(hide_password=False)
        )
        try:
            with server_engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
                quoted = server_engine.dialect.identifier_preparer.quote(database)
                conn.execute(text(self._create_database_sql(quoted, collation)))
        except SQLAlchemyError as e:
            raise DatabaseCreationError(str(e)) from e
        finally:
            server_engine.dispose()

        # the server may need a moment before the new database accepts connections
        for attempt in range(self.create_retries):
            if self.database_exists():
                return
            logger.info("Waiting for database %s (attempt %d/%d)", database, attempt + 1, self.create_retries)
            time.sleep(self.retry_delay)
        raise DatabaseCreationError("Database %s was created but is not reachable" % database)

    def _create_database_sql(self, quoted_name: str, collation: Optional[str]) -> str:
        raise NotImplementedError

    def initialize_database(self) -> None:
        try:
            engine = self.get_engine()
            Base.metadata.create_all(bind=engine)
            session = self.session_factory()()
            try:
                if session.query(models.SchemaVersion).first() is None:
                    session.add(models.SchemaVersion(version=models.SCHEMA_VERSION))
                    session.commit()
            finally:
                session.close()
        except SQLAlchemyError as e:
            raise SchemaError(str(e)) from e
        logger.info("Database schema initialized (version %s)", models.SCHEMA_VERSION)


class PostgreSQLDataProvider(DataProvider):
    kind = DataProviderType.POSTGRESQL
    drivername = "postgresql+psycopg"
    maintenance_database = "postgres"

    def _create_database_sql(self, quoted_name, collation):
        sql = "CREATE DATABASE %s WITH ENCODING 'UTF8'" % quoted_name
        if collation:
            sql += " LC_COLLATE '%s' TEMPLATE template0" % collation.replace("'", "")
        return sql


class MySqlDataProvider(DataProvider):
    kind = DataProviderType.MYSQL
    drivername = "mysql+pymysql"

    def _extra_query(self, request):
        return {"charset": "utf8mb4"}

    def _create_database_sql(self, quoted_name, collation):
        sql = "CREATE DATABASE IF NOT EXISTS %s CHARACTER SET utf8mb4" % quoted_name
        if collation:
            sql += " COLLATE %s" % collation
        return sql


class SqlServerDataProvider(DataProvider):
    kind = DataProviderType.SQLSERVER
    drivername = "mssql+pyodbc"
    maintenance_database = "master"

    def _extra_query(self, request):
        query = {"driver": "ODBC Driver 18 for SQL Server", "TrustServerCertificate": "yes"}
        if request.integrated_security:
            query["trusted_connection"] = "yes"
        return query

    def _create_database_sql(self, quoted_name, collation):
        sql = "CREATE DATABASE %s" % quoted_name
        if collation:
            sql += " COLLATE %s" % collation
        return sql


class SqliteDataProvider(DataProvider):
    """File-backed provider; ``database_name`` is a path relative to the data directory."""

    kind = DataProviderType.SQLITE
    drivername = "sqlite"

    def __init__(self, settings_store: DataSettingsManager, data_dir: Optional[str] = None):
        super().__init__(settings_store)
        self._data_dir = data_dir or os.path.dirname(os.path.abspath(settings_store.path))

    def build_connection_string(self, request: InstallRequest) -> str:
        if not request.database_name:
            return ""
        name = request.database_name
        if not name.endswith((".db", ".sqlite", ".sqlite3")):
            name += ".db"
        path = name if os.path.isabs(name) else os.path.join(self._data_dir, name)
        return URL.create("sqlite", database=path).render_as_string(hide_password=False)

    def _database_path(self) -> Optional[str]:
        return make_url(self.connection_string).database

    def database_exists(self) -> bool:
        path = self._database_path()
        return bool(path) and os.path.exists(path)

    def create_database(self, collation: Optional[str] = None) -> None:
        path = self._database_path()
        if not path:
            raise DatabaseCreationError("Connection string has no database file")
        if collation:
            logger.info("SQLite ignores database collation %s", collation)
        try:
            os.makedirs(os.path.dirname(path) or ".", exist_ok=True)
            with self.get_engine().connect() as conn:
                conn.execute(text("SELECT 1"))
        except (OSError, SQLAlchemyError) as e:
            raise DatabaseCreationError(str(e)) from e


PROVIDERS: Dict[DataProviderType, Type[DataProvider]] = {
    DataProviderType.SQLITE: SqliteDataProvider,
    DataProviderType.POSTGRESQL: PostgreSQLDataProvider,
    DataProviderType.MYSQL: MySqlDataProvider,
    DataProviderType.SQLSERVER: SqlServerDataProvider,
}


def get_data_provider(kind: DataProviderType, settings_store: DataSettingsManager) -> DataProvider:
    try:
        return PROVIDERS[DataProviderType(kind)](settings_store)
    except (KeyError, ValueError):
        raise ValueError("Unsupported data provider: %s" % kind)
