import subprocess
import sys
from typing import Optional

import typer
from rich.console import Console

from config import settings
from database import initialize_database

APP_NAME = "Library API"

app = typer.Typer(help=f"{APP_NAME} command line.", no_args_is_help=True)
console = Console()


@app.command()
def serve(
    host: Optional[str] = typer.Option(None, help="Interface to bind, defaults to API_HOST."),
    port: Optional[int] = typer.Option(None, help="Port to listen on, defaults to PORT."),
    reload: bool = typer.Option(False, help="Restart the server when source files change."),
):
    """Starts the Uvicorn server for the HTTP API."""
    host = host or settings.api_host
    port = int(port or settings.api_port)
    url = f"http://{host}:{port}/books"
    console.print(f"[green]Server is running on port {port}: [link={url}]{url}[/link][/]")

    args = [
        sys.executable,
        "-m", "uvicorn",
        "api:app",
        "--host", host,
        "--port", str(port),
    ]
    if reload:
        args.append("--reload")
    try:
        subprocess.run(args, check=False)
    except FileNotFoundError:
        console.print("[bold red]Error:[/] could not launch `uvicorn`. Make sure it is installed.")
        raise typer.Exit(code=1)


@app.command("init-db")
def init_db(db_file: Optional[str] = typer.Option(None, help="SQLite file, defaults to LIBRARY_DB_FILE.")):
    """Creates the books table if it does not exist yet."""
    db_file = db_file or settings.database_file
    pool = initialize_database(db_file, pool_size=1)
    pool.close()
    console.print(f"[green]Database ready:[/] {db_file}")


if __name__ == "__main__":
    app()
