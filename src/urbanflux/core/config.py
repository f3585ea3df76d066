"""
Configuration loading for the ETL pipeline.

Values are resolved in order: model defaults, an optional YAML file, then
environment variables (a local .env file is loaded first if present).

Expected YAML format:
```yaml
database:
  host: localhost
  port: 5432
  user: urbanflux_user
  database: urbanflux
etl:
  chunk_size: 100000
  mode: incremental
  bad_rows_dir: /app/bad_rows
logging:
  level: INFO
  format: json
```
"""

import os
from pathlib import Path
from typing import Any, Literal

import yaml
from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError

from urbanflux.core.errors import ConfigError
from urbanflux.core.models import RunMode


class DatabaseConfig(BaseModel):
    """PostgreSQL connection settings."""

    host: str = "localhost"
    port: int = Field(default=5432, gt=0, lt=65536)
    user: str = "urbanflux_user"
    password: str | None = None
    database: str = "urbanflux"
    max_connections: int = Field(default=5, ge=1)
    timeout: float = Field(default=30.0, gt=0)

    def conninfo(self) -> str:
        if not self.password:
            raise ConfigError(
                "Database password must be provided. "
                "Set PGPASSWORD environment variable or database.password in the config file."
            )
        return (
            f"host={self.host} "
            f"port={self.port} "
            f"dbname={self.database} "
            f"user={self.user} "
            f"password={self.password} "
            f"connect_timeout={int(self.timeout)}"
        )


class EtlConfig(BaseModel):
    """Pipeline behaviour settings."""

    chunk_size: int = Field(default=100_000, ge=1)
    insert_batch_size: int = Field(default=1000, ge=1)
    mode: RunMode = RunMode.FULL
    input_path: str | None = None
    delimiter: str = Field(default=",", min_length=1, max_length=1)
    bad_rows_dir: str | None = None


class LoggingConfig(BaseModel):
    """Logging settings."""

    level: str = "INFO"
    format: Literal["json", "text"] = "json"
    metrics_port: int | None = None


class PipelineConfig(BaseModel):
    """Top-level configuration object."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    etl: EtlConfig = Field(default_factory=EtlConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)


# env var -> (section, key)
ENV_MAPPING = {
    "PGHOST": ("database", "host"),
    "PGPORT": ("database", "port"),
    "PGUSER": ("database", "user"),
    "PGPASSWORD": ("database", "password"),
    "PGDATABASE": ("database", "database"),
    "DB_MAX_CONNECTIONS": ("database", "max_connections"),
    "ETL_CHUNK_SIZE": ("etl", "chunk_size"),
    "ETL_INSERT_BATCH_SIZE": ("etl", "insert_batch_size"),
    "ETL_MODE": ("etl", "mode"),
    "ETL_INPUT_PATH": ("etl", "input_path"),
    "ETL_DELIMITER": ("etl", "delimiter"),
    "ETL_BAD_ROWS_DIR": ("etl", "bad_rows_dir"),
    "LOG_LEVEL": ("logging", "level"),
    "LOG_FORMAT": ("logging", "format"),
    "METRICS_PORT": ("logging", "metrics_port"),
}


def _load_yaml(config_path: str | Path) -> dict[str, Any]:
    path = Path(config_path)
    if not path.exists():
        raise ConfigError(f"Configuration file not found: {config_path}")

    with open(path) as f:
        data = yaml.safe_load(f)

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Configuration file must contain a mapping: {config_path}")
    return data


def load_config(
    config_path: str | Path | None = None,
    env: dict[str, str] | None = None,
    load_env_file: bool = True,
) -> PipelineConfig:
    """
    Build a PipelineConfig from YAML and environment variables.

    Args:
        config_path: Optional YAML file path
        env: Environment mapping (defaults to os.environ)
        load_env_file: Load a .env file into os.environ before reading it

    Returns:
        Validated PipelineConfig

    Raises:
        ConfigError: If the file is missing or any value is invalid
    """
    if load_env_file and env is None:
        load_dotenv()
    environ = os.environ if env is None else env

    raw: dict[str, Any] = {"database": {}, "etl": {}, "logging": {}}
    if config_path:
        for section, values in _load_yaml(config_path).items():
            if section not in raw or not isinstance(values, dict):
                raise ConfigError(f"Unknown or malformed config section: {section}")
            raw[section].update(values)

    for var, (section, key) in ENV_MAPPING.items():
        value = environ.get(var)
        if value is not None and value != "":
            raw[section][key] = value

    if isinstance(raw["etl"].get("mode"), str):
        try:
            raw["etl"]["mode"] = RunMode.parse(raw["etl"]["mode"])
        except ValueError as e:
            raise ConfigError(str(e)) from e
    if isinstance(raw["logging"].get("format"), str):
        log_format = raw["logging"]["format"].lower()
        raw["logging"]["format"] = "text" if log_format == "pretty" else log_format

    try:
        return PipelineConfig.model_validate(raw)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e
