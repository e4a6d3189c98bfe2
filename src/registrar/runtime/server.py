"""
Registry HTTP server.

Serves the installer manifest for ``owner/slug``. Resolution either yields a
complete manifest or a single error response; a partial file set is never
returned.
"""

import logging
import time
from collections.abc import Callable
from typing import TypeVar

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from registrar import __version__
from registrar.core import ir
from registrar.core.classifier import direct_registry_dependencies
from registrar.core.config import RegistryConfig, ServerConfig
from registrar.core.errors import BackingStoreUnavailable, DependencyNotFound, RegistryError
from registrar.core.manifest_builder import build_registry_manifest
from registrar.core.resolver import BackingStore, DependencyResolver

logger = logging.getLogger(__name__)

T = TypeVar("T")

COMPONENT_NOT_FOUND = "Component not found"


class ComponentNotFound(DependencyNotFound):
    """The requested root entry does not exist."""

    def __init__(self, identifier: str):
        super().__init__(identifier, COMPONENT_NOT_FOUND)


def calculate_backoff(attempt: int, initial_delay: float, max_delay: float) -> float:
    """Exponential backoff delay for a 0-indexed attempt, capped at ``max_delay``."""
    delay = initial_delay * (2**attempt)
    return min(delay, max_delay)


def call_with_retries(
    func: Callable[[], T],
    config: ServerConfig,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    """
    Call ``func``, retrying while the backing store is unavailable.

    Raises:
        BackingStoreUnavailable: When every attempt failed
    """
    attempts = max(1, config.retry_attempts)
    attempt = 0
    while True:
        try:
            return func()
        except BackingStoreUnavailable as e:
            attempt += 1
            if attempt >= attempts:
                logger.error(f"Backing store unavailable after {attempts} attempts: {e}")
                raise
            delay = calculate_backoff(
                attempt - 1, config.retry_initial_delay_seconds, config.retry_max_delay_seconds
            )
            logger.warning(
                f"Backing store unavailable (attempt {attempt}/{attempts}), "
                f"retrying in {delay}s: {e}"
            )
            sleep(delay)


def build_manifest_for(
    store: BackingStore,
    owner: str,
    slug: str,
    config: RegistryConfig,
) -> ir.RegistryManifest:
    """
    Resolve ``owner/slug`` and render its manifest.

    Seeds are the root followed by its direct registry dependencies; the
    root entry read here is handed to the resolver so it is fetched once.

    Raises:
        ComponentNotFound: If the root entry does not exist
        DependencyNotFound: If any reachable dependency is missing
        BackingStoreUnavailable: If the store cannot be reached
    """
    root = store.fetch_entry(owner, slug)
    if root is None:
        raise ComponentNotFound(f"{owner}/{slug}")

    seeds = [root.identifier, *direct_registry_dependencies(owner, root.internal_dependencies)]
    resolver = DependencyResolver(
        store,
        max_workers=config.resolver.max_workers,
        fetch_timeout=config.resolver.fetch_timeout_seconds,
    )
    resolved = resolver.resolve(seeds, prefetched={root.identifier: root})
    return build_registry_manifest(root, resolved, config.server.file_extension)


def create_app(
    store: BackingStore,
    config: RegistryConfig | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> FastAPI:
    """
    Create the registry FastAPI application.

    Args:
        store: Backing store to serve entries from
        config: Registrar configuration (defaults when None)
        sleep: Delay function used between retries

    Returns:
        FastAPI application
    """
    config = config or RegistryConfig()
    app = FastAPI(
        title="Registrar",
        description="Component registry manifest server",
        version=__version__,
    )

    @app.exception_handler(DependencyNotFound)
    async def not_found_handler(request: Request, exc: DependencyNotFound) -> JSONResponse:
        """Missing root or dependency: 404, no partial manifest."""
        logger.info(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=404, content={"error": str(exc)})

    @app.exception_handler(BackingStoreUnavailable)
    async def unavailable_handler(request: Request, exc: BackingStoreUnavailable) -> JSONResponse:
        """Store still unavailable after retries: 503."""
        return JSONResponse(status_code=503, content={"error": str(exc)})

    @app.exception_handler(RegistryError)
    async def registry_error_handler(request: Request, exc: RegistryError) -> JSONResponse:
        logger.error(f"{request.url.path}: {exc}")
        return JSONResponse(status_code=500, content={"error": str(exc)})

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.get("/r/{owner}/{slug}")
    def get_registry_item(owner: str, slug: str) -> JSONResponse:
        """Serve the installer manifest for ``owner/slug``."""
        try:
            manifest = call_with_retries(
                lambda: build_manifest_for(store, owner, slug, config),
                config.server,
                sleep,
            )
        except RegistryError:
            raise
        except Exception as e:
            logger.exception(f"Unexpected error serving {owner}/{slug}")
            message = str(e) or "An unexpected error occurred"
            return JSONResponse(status_code=500, content={"error": message})

        logger.info(f"Served {owner}/{slug} with {len(manifest.files)} file(s)")
        return JSONResponse(content=manifest.to_wire())

    return app
