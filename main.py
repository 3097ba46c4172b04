#!/usr/bin/env python3
"""
AuthorFeed - Author Feed Ingestion
==================================

Main application entry point with CLI interface for management and ingestion.

Usage:
    python main.py --help                    # Show all commands
    python main.py check-config              # Validate configuration
    python main.py init-db                   # Initialize database
    python main.py ingest jdoe --limit 5     # Ingest an author's feed
    python main.py articles                  # List stored articles
    python main.py categories                # List known categories
"""

import sys
import asyncio
import logging
from pathlib import Path

import click
from rich.console import Console
from rich.table import Table
from rich.markup import escape

# Add project root to Python path
sys.path.insert(0, str(Path(__file__).parent))

from authorfeed.config.settings import get_settings
from authorfeed.database.schema import DatabaseSchema
from authorfeed.database.connection import get_db_manager
from authorfeed.services.ingestion_service import IngestionService
from authorfeed.utils.logging import configure_application_logging
from authorfeed.utils.exceptions import AuthorFeedError

console = Console()
logger = logging.getLogger(__name__)


def _build_service(settings) -> IngestionService:
    db_manager = get_db_manager(settings.database.path, pool_size=settings.database.pool_size)
    return IngestionService.from_settings(settings, db_manager)


def _configure_logging(settings, debug: bool) -> None:
    configure_application_logging(
        log_level="DEBUG" if debug else settings.get_effective_log_level(),
        log_file=settings.logging.file_path,
        enable_console=settings.logging.console_logging,
        structured_logging=settings.logging.structured_logging,
        max_file_size_mb=settings.logging.max_file_size_mb,
        backup_count=settings.logging.backup_count,
    )


@click.group(invoke_without_command=True)
@click.option('--debug', is_flag=True, help='Enable debug mode')
@click.pass_context
def cli(ctx, debug):
    """AuthorFeed - author feed ingestion and article store."""
    ctx.ensure_object(dict)
    ctx.obj['debug'] = debug

    if ctx.invoked_subcommand is None:
        click.echo(ctx.get_help())


@cli.command()
def check_config():
    """Validate configuration and environment variables."""
    console.print("[bold blue]🔧 Checking AuthorFeed Configuration[/bold blue]")

    try:
        settings = get_settings()
    except AuthorFeedError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    table = Table(title="Configuration Status")
    table.add_column("Component", style="cyan")
    table.add_column("Details")

    table.add_row("Feed", f"Template: {settings.feed.url_template}")
    table.add_row("Defaults", f"Author: {settings.feed.default_username}, Limit: {settings.feed.default_limit}")
    table.add_row("Database", f"Path: {settings.database.path}, Pool: {settings.database.pool_size}")
    table.add_row("Logging", f"Level: {settings.get_effective_log_level()}, Console: {settings.logging.console_logging}")

    console.print(table)
    console.print("[bold green]✅ All configuration checks passed![/bold green]")


@cli.command()
def init_db():
    """Initialize database with schema."""
    console.print("[bold blue]🗄️ Initializing AuthorFeed Database[/bold blue]")

    try:
        settings = get_settings()
    except AuthorFeedError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    schema = DatabaseSchema(settings.database.path)
    schema.create_tables()

    if not schema.verify_schema():
        console.print("[bold red]❌ Database schema verification failed[/bold red]")
        sys.exit(1)

    console.print("[bold green]✅ Database initialized successfully![/bold green]")

    info = get_db_manager(settings.database.path).get_database_info()

    info_table = Table(title="Database Information")
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")

    info_table.add_row("Database Path", settings.database.path)
    info_table.add_row("Size", f"{info['database_size_mb']:.2f} MB")
    for table_name, count in info['table_counts'].items():
        info_table.add_row(f"Rows in {table_name}", str(count))

    console.print(info_table)


@cli.command()
@click.argument('username', required=False)
@click.option('--limit', '-n', type=int, default=None, help='Number of articles to display')
@click.option('--deadline', type=float, default=None, help='Overall fetch deadline in seconds')
@click.pass_context
def ingest(ctx, username, limit, deadline):
    """Fetch an author's feed and store its articles."""
    try:
        settings = get_settings()
        _configure_logging(settings, ctx.obj.get('debug'))

        DatabaseSchema(settings.database.path).create_tables()
        service = _build_service(settings)

        author = username or settings.feed.default_username
        console.print(f"[bold blue]📡 Ingesting feed for {author}[/bold blue]")

        result = asyncio.run(service.ingest_for_author(author, limit=limit, deadline=deadline))

    except AuthorFeedError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        console.print(f"[dim]{escape(str(e))}[/dim]")
        sys.exit(1)

    table = Table(title=f"Articles by {result.username}")
    table.add_column("Published", style="green")
    table.add_column("Title", style="cyan")
    table.add_column("Categories", style="yellow")

    for article in result.articles:
        title = article.title
        table.add_row(
            article.published_at.strftime("%Y-%m-%d"),
            escape(title[:60] + "..." if len(title) > 60 else title),
            escape(", ".join(article.categories)),
        )

    console.print(table)
    console.print(
        f"[bold green]✅ Stored {result.stored_count} of {result.total_fetched} items[/bold green]"
    )

    if result.skipped:
        console.print(f"[yellow]⚠️ Skipped {result.skipped_count} items:[/yellow]")
        for failure in result.skipped:
            console.print(f"  • item {failure.index} ({failure.guid or 'no guid'}): {escape(failure.reason)}")


@cli.command()
def articles():
    """List stored articles, newest first."""
    try:
        settings = get_settings()
        DatabaseSchema(settings.database.path).create_tables()
        page = _build_service(settings).list_stored_articles()
    except AuthorFeedError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    if not page.articles:
        console.print("[yellow]⚠️ No articles stored yet[/yellow]")
        return

    table = Table(title=f"Stored Articles ({page.total})")
    table.add_column("Published", style="green")
    table.add_column("Author", style="magenta")
    table.add_column("Title", style="cyan")
    table.add_column("Categories", style="yellow")

    for article in page.articles:
        table.add_row(
            article.published_at.strftime("%Y-%m-%d %H:%M"),
            article.creator,
            escape(article.title),
            escape(", ".join(article.categories)),
        )

    console.print(table)


@cli.command()
def categories():
    """List all known category names."""
    try:
        settings = get_settings()
        DatabaseSchema(settings.database.path).create_tables()
        names = _build_service(settings).list_categories()
    except AuthorFeedError as e:
        console.print(f"[bold red]❌ {e.user_message}[/bold red]")
        sys.exit(1)

    if not names:
        console.print("[yellow]⚠️ No categories stored yet[/yellow]")
        return

    for name in names:
        console.print(f"  • {escape(name)}")


if __name__ == "__main__":
    try:
        cli()
    except KeyboardInterrupt:
        console.print("\n[yellow]👋 AuthorFeed interrupted by user[/yellow]")
        sys.exit(130)
