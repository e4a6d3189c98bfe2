"""
Registrar CLI.

Commands:
- analyze: analyze a component and its demo, print the facts as JSON
- publish: analyze and store a new registry entry
- resolve: print the installer manifest for an entry
- serve:   run the manifest HTTP server
"""

import json
import logging
from pathlib import Path
from typing import Any

import typer
from rich.console import Console
from rich.markup import escape

from registrar import __version__
from registrar.core.analyzer import versions_from_package_json
from registrar.core.config import RegistryConfig, load_config
from registrar.core.errors import RegistryError
from registrar.core.resolver import parse_identifier
from registrar.core.submission import analyze_submission

app = typer.Typer(
    help="""Registrar – component registry engine

  • analyze / publish: run the submission pipeline on a component and demo
  • resolve: print the installer manifest for owner/slug
  • serve: run the manifest server
""",
    no_args_is_help=True,
)

console = Console(stderr=True)

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def version_callback(value: bool) -> None:
    if value:
        typer.echo(f"registrar version {__version__}")
        raise typer.Exit()


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_path: Path | None = typer.Option(  # noqa: B008
        None,
        "--config",
        "-c",
        help="Path to registrar.toml (default: ./registrar.toml if present)",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Logging level (DEBUG, INFO, WARNING, ERROR)",
    ),
    version: bool | None = typer.Option(
        None,
        "--version",
        "-v",
        callback=version_callback,
        is_eager=True,
        help="Show version",
    ),
) -> None:
    """Registrar CLI main callback for global options."""
    logging.basicConfig(level=log_level.upper(), format=LOG_FORMAT)
    if config_path is not None and not config_path.exists():
        console.print(f"[red]Config file not found: {escape(str(config_path))}[/red]")
        raise typer.Exit(1)
    ctx.obj = load_config(config_path)


def _config(ctx: typer.Context) -> RegistryConfig:
    return ctx.obj if isinstance(ctx.obj, RegistryConfig) else load_config()


def _read_text(path: Path) -> str:
    if not path.exists():
        console.print(f"[red]File not found: {escape(str(path))}[/red]")
        raise typer.Exit(1)
    return path.read_text(encoding="utf-8")


def _parse_internal(value: str | None) -> dict[str, str]:
    if not value:
        return {}
    try:
        data = json.loads(value)
    except json.JSONDecodeError as e:
        raise typer.BadParameter(f"--internal must be a JSON object: {e}") from e
    if not isinstance(data, dict):
        raise typer.BadParameter("--internal must be a JSON object of path -> slug")
    return {str(path): str(slug) for path, slug in data.items()}


def _known_versions(package_json: Path | None) -> dict[str, str]:
    if package_json is None:
        return {}
    return versions_from_package_json(_read_text(package_json))


def _fail(error: Exception) -> typer.Exit:
    console.print(f"[red]Error: {escape(str(error))}[/red]")
    return typer.Exit(1)


def _open_store(config: RegistryConfig, db: Path | None) -> Any:
    from registrar.runtime.store import SQLiteRegistryStore

    return SQLiteRegistryStore(db or config.store.db_path)


@app.command()
def analyze(
    ctx: typer.Context,
    component: Path = typer.Argument(..., help="Component source file"),  # noqa: B008
    demo: Path = typer.Argument(..., help="Demo source file"),  # noqa: B008
    package_json: Path | None = typer.Option(  # noqa: B008
        None, "--package-json", help="package.json to read dependency versions from"
    ),
    internal: str | None = typer.Option(
        None, "--internal", help='Known internal slugs as JSON, e.g. \'{"./card": "card"}\''
    ),
) -> None:
    """Analyze a component and its demo and print the result as JSON."""
    config = _config(ctx)
    try:
        analysis = analyze_submission(
            _read_text(component),
            _read_text(demo),
            existing_internal=_parse_internal(internal),
            known_versions=_known_versions(package_json),
            config=config.analysis,
        )
    except RegistryError as e:
        raise _fail(e) from e

    typer.echo(json.dumps(analysis.model_dump(), indent=2))
    if not analysis.publishable:
        console.print("[yellow]Please specify the slug for all internal dependencies[/yellow]")


@app.command()
def publish(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="owner/slug of the new entry"),
    component: Path = typer.Argument(..., help="Component source file"),  # noqa: B008
    demo: Path = typer.Argument(..., help="Demo source file"),  # noqa: B008
    package_json: Path | None = typer.Option(  # noqa: B008
        None, "--package-json", help="package.json to read dependency versions from"
    ),
    internal: str | None = typer.Option(
        None, "--internal", help="Internal dependency slugs as JSON"
    ),
    registry: str = typer.Option("ui", "--registry", help="Registry namespace"),
    name: str | None = typer.Option(None, "--name", help="Display name"),
    description: str | None = typer.Option(None, "--description", help="Description"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),  # noqa: B008
) -> None:
    """Analyze a component and its demo and publish them as a new entry."""
    from registrar.runtime.store import publish_submission

    config = _config(ctx)
    try:
        owner, slug = parse_identifier(identifier)
        analysis = analyze_submission(
            _read_text(component),
            _read_text(demo),
            existing_internal=_parse_internal(internal),
            known_versions=_known_versions(package_json),
            config=config.analysis,
        )
        entry = publish_submission(
            _open_store(config, db),
            owner,
            slug,
            analysis,
            name=name,
            registry=registry,
            description=description,
        )
    except RegistryError as e:
        raise _fail(e) from e

    console.print(f"[green]Published {escape(entry.identifier)}[/green]")


@app.command()
def resolve(
    ctx: typer.Context,
    identifier: str = typer.Argument(..., help="owner/slug to resolve"),
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),  # noqa: B008
) -> None:
    """Print the installer manifest for an entry."""
    from registrar.runtime.server import build_manifest_for

    config = _config(ctx)
    try:
        owner, slug = parse_identifier(identifier)
        manifest = build_manifest_for(_open_store(config, db), owner, slug, config)
    except RegistryError as e:
        raise _fail(e) from e

    typer.echo(json.dumps(manifest.to_wire(), indent=2))


@app.command()
def serve(
    ctx: typer.Context,
    db: Path | None = typer.Option(None, "--db", help="SQLite database path"),  # noqa: B008
    host: str | None = typer.Option(None, "--host", help="Bind host"),
    port: int | None = typer.Option(None, "--port", help="Bind port"),
) -> None:
    """Run the manifest HTTP server."""
    import uvicorn

    from registrar.runtime.server import create_app

    config = _config(ctx)
    store = _open_store(config, db)
    bind_host = host or config.server.host
    bind_port = port or config.server.port

    console.print(f"[green]Serving registry on http://{bind_host}:{bind_port}[/green]")
    uvicorn.run(create_app(store, config), host=bind_host, port=bind_port)


def main() -> None:
    app()


if __name__ == "__main__":
    main()
