import os
from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    service_name: str = os.getenv("SERVICE_NAME", "ledger")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")
    server_host: str = os.getenv("SERVER_HOST", "0.0.0.0")
    server_port: int = int(os.getenv("SERVER_PORT", "8080"))

    # Full SQLAlchemy URL; when unset the MySQL settings below are used
    database_url: Optional[str] = os.getenv("DATABASE_URL")
    db_driver: str = os.getenv("DB_DRIVER", "mysql+mysqldb")
    db_isolation_level: str = os.getenv("DB_ISOLATION_LEVEL", "READ COMMITTED")
    db_pool_size: int = int(os.getenv("DB_POOL_SIZE", "10"))
    db_pool_timeout: int = int(os.getenv("DB_POOL_TIMEOUT", "30"))
    sqlite_busy_timeout: float = float(os.getenv("SQLITE_BUSY_TIMEOUT", "30"))

    mysql_user: str = os.getenv("MYSQL_USER", "root")
    mysql_password: str = os.getenv("MYSQL_PASSWORD", "root")
    mysql_host: str = os.getenv("MYSQL_HOST", "mysql")
    mysql_db: str = os.getenv("MYSQL_DB", "simple_bank")
    mysql_port: int = int(os.getenv("MYSQL_PORT", "3306"))

    @property
    def sqlalchemy_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"{self.db_driver}://{self.mysql_user}:{self.mysql_password}@{self.mysql_host}:{self.mysql_port}/{self.mysql_db}"

settings = Settings()
