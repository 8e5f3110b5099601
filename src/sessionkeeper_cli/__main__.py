import os
from datetime import datetime, timezone
from pathlib import Path

import httpx
import typer

from sessionkeeper.errors import SnapshotError
from sessionkeeper.services.snapshot import deserialize, format_timestamp, serialize

app = typer.Typer(add_completion=False, help="SessionKeeper CLI")


def api_base() -> str:
    return os.environ.get("SK_API", "http://localhost:8080")


def read_snapshot(path: Path):
    try:
        return deserialize(path.read_text(encoding="utf-8"))
    except OSError as e:
        typer.echo(f"Error: cannot read {path}: {e}", err=True)
        raise typer.Exit(code=1)
    except SnapshotError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=2)


@app.command()
def show(path: Path = typer.Argument(..., help="Snapshot file")):
    """List the sessions stored in a snapshot"""
    now = datetime.now(timezone.utc)
    sessions = read_snapshot(path)
    for s in sorted(sessions, key=lambda s: s.expires):
        state = "expired" if s.is_expired(now) else "live"
        typer.echo(f"{s.id}  {format_timestamp(s.expires)}  {state}  keys={len(s.data)}")
    typer.echo(f"{len(sessions)} sessions")


@app.command()
def validate(path: Path = typer.Argument(..., help="Snapshot file")):
    """Check that a snapshot can be restored"""
    sessions = read_snapshot(path)
    typer.echo(f"✓ {path} is a valid snapshot with {len(sessions)} sessions")


@app.command()
def prune(
    path: Path = typer.Argument(..., help="Snapshot file"),
    output: Path = typer.Option(None, "--output", "-o", help="Write here instead of in place"),
):
    """Drop expired sessions from a snapshot file"""
    now = datetime.now(timezone.utc)
    sessions = read_snapshot(path)
    live = [s for s in sessions if not s.is_expired(now)]
    target = output or path
    target.write_text(serialize(live), encoding="utf-8")
    typer.echo(f"✓ Pruned {len(sessions) - len(live)} expired sessions, {len(live)} kept in {target}")


def _post_admin(action: str) -> dict:
    url = f"{api_base()}/admin/sessions/{action}"
    try:
        with httpx.Client() as client:
            r = client.post(url)
    except httpx.HTTPError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(code=1)
    if r.status_code != 200:
        typer.echo(f"Error: {r.status_code} {r.text}", err=True)
        raise typer.Exit(code=1)
    return r.json()


@app.command()
def checkpoint():
    """Ask a running server to save its session snapshot now"""
    data = _post_admin("checkpoint")
    typer.echo(f"✓ Saved {data.get('Saved', 0)} sessions")


@app.command()
def sweep():
    """Ask a running server to evict expired sessions"""
    data = _post_admin("sweep")
    typer.echo(f"✓ Evicted {data.get('Evicted', 0)} sessions")


def main() -> None:
    app()


if __name__ == "__main__":
    main()
