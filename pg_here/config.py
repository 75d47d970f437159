"""
Configuration management for pg_here.

Supports:
- TOML config files
- Environment variables
- Command-line overrides
- Sensible defaults

Priority (highest to lowest):
1. Command-line arguments
2. Environment variables
3. Config file
4. Defaults
"""

import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

from .errors import ConfigError
from .engine.instance import DEFAULT_DATABASE, DEFAULT_PASSWORD, DEFAULT_PORT, DEFAULT_USERNAME

# Default config file locations (searched in order)
CONFIG_SEARCH_PATHS = [
    Path.cwd() / "pg_here.toml",
    Path.home() / ".config" / "pg_here" / "config.toml",
]

DEFAULT_PROJECT_NAME = "default"


@dataclass
class ServerConfig:
    """Project-local server settings."""
    port: int = DEFAULT_PORT
    username: str = DEFAULT_USERNAME
    password: str = DEFAULT_PASSWORD
    database: str = DEFAULT_DATABASE
    version: Optional[str] = None


@dataclass
class PathsConfig:
    """Where things live on disk."""
    project_dir: Optional[str] = None       # snapshot project (default ./pg_projects/default)
    pg_local: str = "pg_local"              # holds bin/<version>/ and data/
    pg_ctl: Optional[str] = None            # explicit pg_ctl binary
    log_file: Optional[str] = None          # server log for restarts

    def resolve_project_dir(self, root: Optional[Path] = None) -> Path:
        if self.project_dir:
            return Path(self.project_dir).expanduser().resolve()
        root = root or Path.cwd()
        return root / "pg_projects" / DEFAULT_PROJECT_NAME

    def installation_dir(self, root: Optional[Path] = None) -> Path:
        return (root or Path.cwd()) / self.pg_local / "bin"


@dataclass
class Config:
    """Main configuration container."""
    server: ServerConfig = field(default_factory=ServerConfig)
    paths: PathsConfig = field(default_factory=PathsConfig)
    verbose: bool = False

    # Source tracking
    _config_file: Optional[Path] = None

    @classmethod
    def load(
        cls,
        config_path: Optional[str] = None,
        env: Optional[Mapping[str, str]] = None,
    ) -> "Config":
        """
        Load configuration from file, then apply environment overrides.

        Args:
            config_path: Explicit path to config file. If None, searches default locations.
            env: Environment mapping (defaults to os.environ)

        Raises:
            ConfigError: explicit file missing, unreadable, or not valid TOML
        """
        config = cls()

        if config_path:
            path = Path(config_path)
            if not path.exists():
                raise ConfigError(f"Config file not found: {config_path}")
        else:
            path = cls._find_config_file()

        if path:
            config = cls._load_from_file(path)
            config._config_file = path

        return config.override_from_env(os.environ if env is None else env)

    @classmethod
    def _find_config_file(cls) -> Optional[Path]:
        for path in CONFIG_SEARCH_PATHS:
            if path.exists():
                return path
        return None

    @classmethod
    def _load_from_file(cls, path: Path) -> "Config":
        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise ConfigError(f"Invalid TOML in {path}: {e}") from e
        except OSError as e:
            raise ConfigError(f"Cannot read config file {path}: {e.strerror or e}") from e
        return cls._from_dict(data)

    @classmethod
    def _from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create Config from dictionary."""
        config = cls()

        if "server" in data:
            srv = data["server"]
            config.server = ServerConfig(
                port=srv.get("port", config.server.port),
                username=srv.get("username", config.server.username),
                password=srv.get("password", config.server.password),
                database=srv.get("database", config.server.database),
                version=srv.get("version") or None,
            )

        if "paths" in data:
            paths = data["paths"]
            config.paths = PathsConfig(
                project_dir=paths.get("project_dir") or None,
                pg_local=paths.get("pg_local", config.paths.pg_local),
                pg_ctl=paths.get("pg_ctl") or None,
                log_file=paths.get("log_file") or None,
            )

        config.verbose = bool(data.get("verbose", False))
        return config

    def override_from_env(self, env: Mapping[str, str]) -> "Config":
        if env.get("PG_PROJECT"):
            self.paths.project_dir = env["PG_PROJECT"]
        if env.get("PG_CTL"):
            self.paths.pg_ctl = env["PG_CTL"]
        if env.get("PG_VERSION"):
            self.server.version = env["PG_VERSION"]
        if env.get("PG_HERE_PORT"):
            try:
                self.server.port = int(env["PG_HERE_PORT"])
            except ValueError as e:
                raise ConfigError(f"PG_HERE_PORT is not a port number: {env['PG_HERE_PORT']}") from e
        return self

    def override_from_args(self, args) -> "Config":
        """
        Override config values from argparse namespace.

        Args with value None are ignored (keeping config file values).
        """
        if getattr(args, "project", None):
            self.paths.project_dir = args.project
        if getattr(args, "pg_ctl", None):
            self.paths.pg_ctl = args.pg_ctl
        if getattr(args, "log_file", None):
            self.paths.log_file = args.log_file

        if getattr(args, "port", None):
            self.server.port = args.port
        if getattr(args, "username", None):
            self.server.username = args.username
        if getattr(args, "password", None):
            self.server.password = args.password
        if getattr(args, "database", None):
            self.server.database = args.database
        if getattr(args, "pg_version", None):
            self.server.version = args.pg_version

        if getattr(args, "verbose", None):
            self.verbose = True

        return self

    def validate(self) -> List[str]:
        """
        Validate configuration.

        Returns:
            List of validation error messages (empty if valid)
        """
        errors = []

        if not isinstance(self.server.port, int) or not 0 < self.server.port < 65536:
            errors.append(f"Port must be between 1 and 65535, got {self.server.port!r}")
        if not self.server.username:
            errors.append("Server username is required")
        if not self.server.database:
            errors.append("Database name is required")
        if self.paths.pg_ctl and os.sep in self.paths.pg_ctl and not Path(self.paths.pg_ctl).exists():
            errors.append(f"pg_ctl not found: {self.paths.pg_ctl}")

        return errors

    def summary(self, include_config_path: bool = True) -> str:
        """Generate human-readable config summary."""
        lines = []

        if include_config_path:
            if self._config_file:
                lines.append(f"Config: {self._config_file}")
            else:
                lines.append("Config: (defaults)")

        lines.append(f"Project: {self.paths.resolve_project_dir()}")
        lines.append(f"Server: {self.server.username}@localhost:{self.server.port}/{self.server.database}")
        lines.append(f"PostgreSQL: {self.server.version or 'newest installed'}")
        lines.append(f"pg_ctl: {self.paths.pg_ctl or '(auto)'}")

        return "\n".join(lines)
