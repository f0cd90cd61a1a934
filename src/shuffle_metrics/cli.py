"""
Command line interface.

Commands:
- shuffle-metrics serve: run the metrics HTTP server
- shuffle-metrics snapshot [SCOPE]: print one scope of a fresh registry as JSON
- shuffle-metrics catalog: list the server-scope metric families
"""

from __future__ import annotations

import json

import typer

from shuffle_metrics._version import get_version
from shuffle_metrics.metrics import (
    SERVER_CATALOG,
    MetricsRegistry,
    StorageWriteAccounting,
    UnknownScopeError,
    snapshot_payload,
)
from shuffle_metrics.runtime.config import get_config
from shuffle_metrics.runtime.logging import setup_logging

app = typer.Typer(help="Shuffle server metrics.", no_args_is_help=True)


def _version_callback(value: bool) -> None:
    if value:
        typer.echo(f"shuffle-metrics {get_version()}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version"
    ),
) -> None:
    """Shuffle server metrics."""


@app.command("serve")
def serve(
    host: str | None = typer.Option(None, "--host", help="Bind address (default from config)"),
    port: int | None = typer.Option(None, "--port", "-p", help="Port (default from config)"),
) -> None:
    """Run the metrics HTTP server."""
    import uvicorn

    from shuffle_metrics.runtime.app_factory import create_app

    config = get_config()
    setup_logging(config.log_dir, config.log_level)

    fastapi_app = create_app(config)
    uvicorn.run(
        fastapi_app,
        host=host or config.host,
        port=port or config.port,
        log_level=config.log_level.lower(),
    )


@app.command("snapshot")
def snapshot(
    scope: str = typer.Argument("server", help="server, runtime, rpc or transport"),
    pretty: bool = typer.Option(False, "--pretty", help="Indent the JSON output"),
) -> None:
    """Print one scope of a freshly initialized registry."""
    config = get_config()
    registry = MetricsRegistry()
    registry.init(config.encoded_tags)
    accounting = StorageWriteAccounting(registry)
    for path in config.remote_storage_paths:
        accounting.register_remote_storage(path)

    try:
        payload = snapshot_payload(registry, scope)
    except UnknownScopeError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)

    typer.echo(json.dumps(payload, indent=2 if pretty else None))


@app.command("catalog")
def catalog() -> None:
    """List server-scope metric families."""
    for spec in SERVER_CATALOG:
        labels = ", ".join(spec.label_names) if spec.label_names else "-"
        typer.echo(f"{spec.name:<32} {spec.kind.value:<8} {labels}")


if __name__ == "__main__":
    app()
