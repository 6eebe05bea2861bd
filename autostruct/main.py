"""autostruct - Main entry point."""

import typer
from rich.console import Console
from .commands.generate import generate
from .config import settings, mask_password

app = typer.Typer(
    name="autostruct",
    help="Generate Rust structs from a PostgreSQL schema",
    add_completion=False,
)

app.command("generate")(generate)

console = Console()


@app.command()
def config():
    """Show current configuration."""
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Database URL: {mask_password(settings.database_url) or 'Not set'}")
    console.print(f"  Schemas: {', '.join(settings.schemas)}")
    console.print(f"  Include views: {'Yes' if settings.include_views else 'No'}")
    console.print(f"  Timeout: {settings.timeout}")
    console.print(f"  Output directory: {settings.output_dir}")
    console.print(f"  Singular names: {'Yes' if settings.singular else 'No'}")
    console.print(f"  Framework: {settings.framework}")
    console.print(f"  Excluded tables: {', '.join(settings.exclude_tables) or 'None'}")


@app.callback()
def main():
    """
    autostruct - Generate Rust structs from a PostgreSQL schema.

    Examples:

        autostruct generate --database-url postgres://localhost/app

        autostruct config
    """
    pass


if __name__ == "__main__":
    app()
