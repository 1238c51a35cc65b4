"""matrixstore CLI — run the server and talk to it.

Usage:
    matrixstore serve                                   # Run the API with uvicorn
    matrixstore init-db                                 # Create tables (dev only)
    matrixstore create-account a@x.com                  # Prompts for a password
    matrixstore login a@x.com                           # Prints a bearer token
    matrixstore save-matrix -c Age=int -c Name=str      # Allocates a new matrix id
    matrixstore save-matrix -m 3 -f columns.json        # Saves under matrix 3
    matrixstore list-matrices                           # Your matrix ids
    matrixstore show-matrix 3                           # Rows of matrix 3
"""

from __future__ import annotations

import asyncio
import concurrent.futures
import json
import os
import sys
from typing import Optional

import click
import httpx

from matrixstore import __version__

# ---------------------------------------------------------------------------
# Config
# ---------------------------------------------------------------------------

DEFAULT_API_URL = "http://localhost:8000"


def _api_url() -> str:
    return os.environ.get("MATRIXSTORE_API_URL", DEFAULT_API_URL).rstrip("/")


def _client() -> httpx.AsyncClient:
    """Build an async HTTP client pointed at the matrixstore server."""
    return httpx.AsyncClient(base_url=_api_url(), timeout=30.0)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _run(coro):
    """Run an async coroutine from a synchronous Click handler.

    Handles nested event loops (e.g. when invoked via Click CliRunner
    inside an existing async context) by offloading to a thread.
    """
    try:
        asyncio.get_running_loop()
    except RuntimeError:
        return asyncio.run(coro)
    else:
        with concurrent.futures.ThreadPoolExecutor(max_workers=1) as pool:
            return pool.submit(asyncio.run, coro).result()


def _auth_headers(token: Optional[str]) -> dict[str, str]:
    if not token:
        click.secho(
            "Error: --token required (or set MATRIXSTORE_TOKEN env var)",
            fg="red",
            err=True,
        )
        sys.exit(1)
    return {"Authorization": f"Bearer {token}"}


def _fail(response: httpx.Response) -> None:
    """Print the server's error body and exit non-zero."""
    try:
        message = response.json().get("error", response.text)
    except ValueError:
        message = response.text
    click.secho(f"Error ({response.status_code}): {message}", fg="red", err=True)
    sys.exit(1)


def _parse_columns(columns: tuple[str, ...], file: Optional[str]) -> list[dict]:
    """Build matrixData from -c NAME=TRANSFORMATION pairs and/or a JSON file."""
    matrix_data: list[dict] = []
    if file:
        with open(file, encoding="utf-8") as fh:
            loaded = json.load(fh)
        if isinstance(loaded, dict):
            loaded = loaded.get("matrixData", [])
        if not isinstance(loaded, list):
            raise click.BadParameter("file must hold a list of columns", param_hint="--file")
        matrix_data.extend(loaded)
    for column in columns:
        name, sep, transformation = column.partition("=")
        if not sep or not name:
            raise click.BadParameter(
                f"expected NAME=TRANSFORMATION, got {column!r}", param_hint="--column"
            )
        matrix_data.append({"columnName": name, "transformation": transformation})
    if not matrix_data:
        raise click.UsageError("Give at least one --column or a --file")
    return matrix_data


def _print_table(rows: list[dict], columns: list[tuple[str, str, int]]):
    """Print a simple ASCII table.

    columns: list of (header, dict_key, width)
    """
    header = "  ".join(h.ljust(w) for h, _, w in columns)
    click.secho(header, bold=True)
    click.echo("-" * len(header))
    for row in rows:
        line = "  ".join(str(row.get(k, "—"))[:w].ljust(w) for _, k, w in columns)
        click.echo(line)


token_option = click.option(
    "--token",
    envvar="MATRIXSTORE_TOKEN",
    help="Bearer token from `matrixstore login` (or MATRIXSTORE_TOKEN)",
)


# ---------------------------------------------------------------------------
# CLI group
# ---------------------------------------------------------------------------


@click.group()
@click.version_option(version=__version__, prog_name="matrixstore")
def main():
    """matrixstore — accounts, tokens and per-user matrix storage."""


@main.command()
@click.option("--host", default=None, help="Bind address (default from settings)")
@click.option("--port", default=None, type=int, help="Port (default from settings)")
@click.option("--reload", is_flag=True, help="Reload on code changes")
def serve(host: Optional[str], port: Optional[int], reload: bool):
    """Run the API server."""
    import uvicorn

    from matrixstore.config import settings

    uvicorn.run(
        "matrixstore.main:app",
        host=host or settings.host,
        port=port or settings.port,
        reload=reload,
    )


@main.command("init-db")
def init_db():
    """Create all tables from the models. Use Alembic for real deployments."""
    from matrixstore.config import settings
    from matrixstore.db.engine import Database

    async def _init():
        database = Database.from_settings(settings)
        try:
            await database.create_all()
        finally:
            await database.close()

    _run(_init())
    click.secho("Tables created", fg="green")


@main.command("create-account")
@click.argument("email")
@click.password_option()
def create_account(email: str, password: str):
    """Create an account for EMAIL."""

    async def _impl():
        async with _client() as c:
            return await c.post(
                "/api/create-account", json={"email": email, "password": password}
            )

    r = _run(_impl())
    if r.status_code != 201:
        _fail(r)
    click.secho(f"Account created for {email}", fg="green")


@main.command()
@click.argument("email")
@click.option("--password", prompt=True, hide_input=True)
def login(email: str, password: str):
    """Log in and print a bearer token (export it as MATRIXSTORE_TOKEN)."""

    async def _impl():
        async with _client() as c:
            return await c.post("/api/login", json={"email": email, "password": password})

    r = _run(_impl())
    if r.status_code != 200:
        _fail(r)
    click.echo(r.json()["token"])


@main.command("save-matrix")
@click.option("--matrix-id", "-m", type=int, help="Store under this id instead of allocating one")
@click.option("--column", "-c", "columns", multiple=True, help="NAME=TRANSFORMATION, repeatable")
@click.option("--file", "-f", type=click.Path(exists=True, dir_okay=False), help="JSON list of columns")
@token_option
def save_matrix(matrix_id: Optional[int], columns: tuple[str, ...], file: Optional[str], token: Optional[str]):
    """Save a matrix and print the id it was stored under."""
    headers = _auth_headers(token)
    body: dict = {"matrixData": _parse_columns(columns, file)}
    if matrix_id is not None:
        body["matrixId"] = matrix_id

    async def _impl():
        async with _client() as c:
            return await c.post("/api/save-matrix", json=body, headers=headers)

    r = _run(_impl())
    if r.status_code != 201:
        _fail(r)
    click.secho(f"Saved matrix {r.json()['matrixId']}", fg="green")


@main.command("list-matrices")
@token_option
def list_matrices(token: Optional[str]):
    """List your matrix ids."""
    headers = _auth_headers(token)

    async def _impl():
        async with _client() as c:
            return await c.get("/api/get-matrix-list", headers=headers)

    r = _run(_impl())
    if r.status_code != 200:
        _fail(r)
    matrix_ids = r.json()["matrixIds"]
    if not matrix_ids:
        click.echo("No matrices yet.")
        return
    for matrix_id in matrix_ids:
        click.echo(matrix_id)


@main.command("show-matrix")
@click.argument("matrix_id", type=int)
@click.option("--json", "as_json", is_flag=True, help="Raw JSON output")
@token_option
def show_matrix(matrix_id: int, as_json: bool, token: Optional[str]):
    """Print the columns of MATRIX_ID in the order they were saved."""
    headers = _auth_headers(token)

    async def _impl():
        async with _client() as c:
            return await c.get(f"/api/get-matrix/{matrix_id}", headers=headers)

    r = _run(_impl())
    if r.status_code != 200:
        _fail(r)
    data = r.json()
    if as_json:
        click.echo(json.dumps(data, indent=2))
        return
    if not data["matrixData"]:
        click.echo(f"Matrix {matrix_id} has no rows.")
        return
    _print_table(
        data["matrixData"],
        [("COLUMN", "columnName", 30), ("TRANSFORMATION", "transformation", 40)],
    )


if __name__ == "__main__":
    main()
