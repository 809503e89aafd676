"""Arietta command-line interface powered by Typer."""

import importlib
import sys
from pathlib import Path
from typing import Annotated

import typer

from arietta._server import DEFAULT_HOST, DEFAULT_PORT

app = typer.Typer(name="arietta", add_completion=False, no_args_is_help=True)

PathArg = Annotated[str, typer.Argument(help="Python file or module:var target.")]


# ------------------------------------------------------------------
# Target resolution
# ------------------------------------------------------------------


def _import_module(module_name: str, search_dir: Path | None = None) -> object:
    if search_dir is not None:
        parent = str(search_dir.resolve())
        if parent not in sys.path:
            sys.path.insert(0, parent)
    try:
        return importlib.import_module(module_name)
    except Exception as exc:
        typer.echo(f"Error importing {module_name!r}: {exc}", err=True)
        raise typer.Exit(1) from exc


def _resolve_cli_target(path: str) -> str:
    """Turn a CLI *path* argument into a ``"module:var"`` string.

    Accepted forms:
    - ``module:var``   → returned as-is
    - ``file.py``      → imports ``file``, scans for an Engine instance
    """
    if ":" in path:
        return path

    file = Path(path)
    if not file.exists():
        typer.echo(f"Error: file {path!r} not found.", err=True)
        raise typer.Exit(1)

    module_name = file.stem
    mod = _import_module(module_name, file.parent)

    var_name = _find_engine_var(mod)
    if var_name is None:
        typer.echo(
            f"Error: no Engine instance found in {path!r}. Provide an explicit target, e.g. main:engine",
            err=True,
        )
        raise typer.Exit(1)

    return f"{module_name}:{var_name}"


def _find_engine_var(mod: object) -> str | None:
    """Scan a module for an ``Engine`` instance.

    Checks ``engine`` and ``app`` first, then falls back to any attribute.
    """
    from arietta.app import Engine

    for name in ("engine", "app"):
        if isinstance(getattr(mod, name, None), Engine):
            return name

    for name in dir(mod):
        if name.startswith("_"):
            continue
        if isinstance(getattr(mod, name, None), Engine):
            return name

    return None


def _load_engine(path: str):
    from arietta.app import Engine

    target = _resolve_cli_target(path)
    module_name, _, var_name = target.partition(":")
    search_dir = Path.cwd() if ":" in path else Path(path).parent
    engine = getattr(_import_module(module_name, search_dir), var_name, None)
    if not isinstance(engine, Engine):
        typer.echo(f"Error: {target!r} is not an Engine instance.", err=True)
        raise typer.Exit(1)
    return engine


# ------------------------------------------------------------------
# Commands
# ------------------------------------------------------------------


@app.command()
def dev(
    path: PathArg = "main.py",
    host: Annotated[str, typer.Option(help="Bind address.")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option(help="Bind port.")] = DEFAULT_PORT,
    reload: Annotated[bool | None, typer.Option("--reload/--no-reload", help="Auto-reload on code changes.")] = None,
) -> None:
    """Start a development server with auto-reload and debug logging."""
    from arietta._server import serve

    target = _resolve_cli_target(path)
    serve(target, host=host, port=port, dev=True, reload=reload)


@app.command()
def run(
    path: PathArg = "main.py",
    host: Annotated[str, typer.Option(help="Bind address.")] = DEFAULT_HOST,
    port: Annotated[int, typer.Option(help="Bind port.")] = DEFAULT_PORT,
    workers: Annotated[int, typer.Option(help="Number of worker processes.")] = 1,
) -> None:
    """Start a production server."""
    from arietta._server import serve

    target = _resolve_cli_target(path)
    serve(target, host=host, port=port, workers=workers)


@app.command()
def routes(path: PathArg = "main.py") -> None:
    """List every registered route."""
    rows = [(info.method, info.path, info.handler_name) for info in _load_engine(path).router.routes()]
    if not rows:
        typer.echo("No routes registered.")
        return

    width_method = max(6, *(len(r[0]) for r in rows))
    width_path = max(4, *(len(r[1]) for r in rows))
    fmt = f"{{:<{width_method}}}  {{:<{width_path}}}  {{}}"
    typer.echo(fmt.format("METHOD", "PATH", "HANDLER"))
    for method, route_path, handler_name in rows:
        typer.echo(fmt.format(method, route_path, handler_name))
