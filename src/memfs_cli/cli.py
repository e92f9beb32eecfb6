from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

import typer

from memfs import CacheConfig, MemoryCache, ValueKind, load_config
from memfs.storage import coerce_text, encode_value

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = typer.Typer(help="memfs CLI")


def _config_option() -> Any:
    return typer.Option(
        None,
        "--config",
        help="Optional JSON/YAML cache config file.",
        exists=True,
        dir_okay=False,
        readable=True,
    )


def _open_cache(config_path: Path | None) -> MemoryCache:
    try:
        config = load_config(config_path) if config_path is not None else CacheConfig()
    except ValueError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc
    return MemoryCache(config=config, start_sweeps=False)


def _render(kind: ValueKind | None, value: Any) -> str:
    if kind is None:
        kind = ValueKind.ABSENT
    if kind == ValueKind.OBJECT:
        return json.dumps(value, ensure_ascii=False, indent=2)
    return encode_value(kind, value)


@app.command("load")
def load(
    path: Path = typer.Argument(..., help="File or directory to load."),
    recursive: bool = typer.Option(
        False,
        "--recursive",
        "-r",
        help="Descend into subdirectories.",
    ),
    config_path: Path | None = _config_option(),
) -> None:
    """Bulk load a file or directory and list inferred kinds."""
    cache = _open_cache(config_path)
    try:
        loaded = cache.load_path(path, recursive=recursive)
    except FileNotFoundError as exc:
        typer.echo(f"path not found: {path}", err=True)
        raise typer.Exit(code=1) from exc

    for loaded_path in loaded:
        typer.echo(f"{cache.get_kind(loaded_path)}\t{loaded_path}")
    typer.echo(f"loaded={len(loaded)}")


@app.command("read")
def read(
    path: Path = typer.Argument(..., help="File to read through the cache."),
    config_path: Path | None = _config_option(),
) -> None:
    """Read a file through the cache and print its typed value."""
    cache = _open_cache(config_path)
    try:
        value = cache.read(path)
    except OSError as exc:
        typer.echo(f"read failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(_render(cache.get_kind(path), value))


@app.command("kind")
def kind(
    path: Path = typer.Argument(..., help="File to classify."),
    config_path: Path | None = _config_option(),
) -> None:
    """Print the inferred kind of a file."""
    cache = _open_cache(config_path)
    try:
        cache.read(path)
    except OSError as exc:
        typer.echo(f"read failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(str(cache.get_kind(path)))


@app.command("write")
def write(
    path: Path = typer.Argument(..., help="Target file."),
    value: str = typer.Argument(..., help="Value text, parsed according to --kind."),
    value_kind: ValueKind = typer.Option(
        ValueKind.STRING,
        "--kind",
        "-k",
        help="Kind to store the value as.",
        case_sensitive=False,
    ),
    config_path: Path | None = _config_option(),
) -> None:
    """Write a typed value through the cache and persist it."""
    try:
        parsed = coerce_text(value, value_kind)
    except ValueError as exc:
        typer.echo(f"invalid {value_kind} value: {exc}", err=True)
        raise typer.Exit(code=1) from exc

    cache = _open_cache(config_path)
    cache.write(path, parsed)
    try:
        cache.persist_path(path)
    except OSError as exc:
        typer.echo(f"persist failed: {exc}", err=True)
        raise typer.Exit(code=1) from exc
    typer.echo(f"wrote {cache.get_kind(path)} {path}")


@app.command("flush")
def flush(
    path: Path = typer.Argument(..., help="File or directory to rewrite."),
    recursive: bool = typer.Option(
        False,
        "--recursive",
        "-r",
        help="Descend into subdirectories.",
    ),
    config_path: Path | None = _config_option(),
) -> None:
    """Load files and rewrite them in canonical form."""
    cache = _open_cache(config_path)
    try:
        cache.load_path(path, recursive=recursive)
    except FileNotFoundError as exc:
        typer.echo(f"path not found: {path}", err=True)
        raise typer.Exit(code=1) from exc

    report = cache.persist_all()
    for failed_path, error in report.failed.items():
        logging.error("flush failed path=%s error=%s", failed_path, error)
    typer.echo(f"persisted={len(report.persisted)} failed={len(report.failed)}")
    if not report.ok:
        raise typer.Exit(code=1)
