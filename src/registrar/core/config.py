import os
import tomllib
from dataclasses import dataclass, field
from pathlib import Path

DEFAULT_CONFIG_FILE = "registrar.toml"
DB_PATH_ENV = "REGISTRAR_DB_PATH"


# =============================================================================
# Analysis Configuration
# =============================================================================


@dataclass
class AnalysisConfig:
    """Source analysis configuration.

    Examples in registrar.toml:

        [analysis]
        local_prefixes = ["./", "../"]
        alias_prefixes = ["@/"]   # resolve within the same package root
        version_sentinel = "latest"
    """

    local_prefixes: list[str] = field(default_factory=lambda: ["./", "../"])
    alias_prefixes: list[str] = field(default_factory=list)
    version_sentinel: str = "latest"


# =============================================================================
# Resolver Configuration
# =============================================================================


@dataclass
class ResolverConfig:
    """Dependency resolver configuration."""

    max_workers: int = 4  # Concurrent sibling fetches per frontier
    fetch_timeout_seconds: float | None = None  # None waits indefinitely


# =============================================================================
# Server Configuration
# =============================================================================


@dataclass
class ServerConfig:
    """Registry HTTP server configuration."""

    host: str = "127.0.0.1"
    port: int = 8000
    file_extension: str = ".tsx"  # Appended to owner/slug for manifest file paths
    retry_attempts: int = 3  # Attempts when the backing store is unavailable
    retry_initial_delay_seconds: float = 0.1
    retry_max_delay_seconds: float = 2.0


@dataclass
class StoreConfig:
    """Backing store configuration."""

    db_path: str = ".registrar/registry.db"


@dataclass
class RegistryConfig:
    """
    Registrar configuration loaded from registrar.toml.

    Every section is optional; missing values fall back to defaults.
    """

    analysis: AnalysisConfig = field(default_factory=AnalysisConfig)
    resolver: ResolverConfig = field(default_factory=ResolverConfig)
    server: ServerConfig = field(default_factory=ServerConfig)
    store: StoreConfig = field(default_factory=StoreConfig)


def load_config(path: Path | None = None) -> RegistryConfig:
    """
    Load configuration from a TOML file.

    Args:
        path: Config file path. When None, ``registrar.toml`` in the current
            directory is used if present.

    Returns:
        RegistryConfig with defaults for anything not specified
    """
    data: dict = {}
    if path is None:
        candidate = Path.cwd() / DEFAULT_CONFIG_FILE
        if candidate.exists():
            path = candidate
    if path is not None:
        data = tomllib.loads(path.read_text(encoding="utf-8"))

    analysis_data = data.get("analysis", {})
    resolver_data = data.get("resolver", {})
    server_data = data.get("server", {})
    store_data = data.get("store", {})

    analysis_config = AnalysisConfig(
        local_prefixes=analysis_data.get("local_prefixes", ["./", "../"]),
        alias_prefixes=analysis_data.get("alias_prefixes", []),
        version_sentinel=analysis_data.get("version_sentinel", "latest"),
    )

    resolver_config = ResolverConfig(
        max_workers=resolver_data.get("max_workers", 4),
        fetch_timeout_seconds=resolver_data.get("fetch_timeout_seconds"),
    )

    server_config = ServerConfig(
        host=server_data.get("host", "127.0.0.1"),
        port=server_data.get("port", 8000),
        file_extension=server_data.get("file_extension", ".tsx"),
        retry_attempts=server_data.get("retry_attempts", 3),
        retry_initial_delay_seconds=server_data.get("retry_initial_delay_seconds", 0.1),
        retry_max_delay_seconds=server_data.get("retry_max_delay_seconds", 2.0),
    )

    # Environment overrides the file
    store_config = StoreConfig(
        db_path=os.environ.get(DB_PATH_ENV, "")
        or store_data.get("db_path", ".registrar/registry.db"),
    )

    return RegistryConfig(
        analysis=analysis_config,
        resolver=resolver_config,
        server=server_config,
        store=store_config,
    )
