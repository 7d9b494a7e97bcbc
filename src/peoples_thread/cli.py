"""Command-line interface for browsing the article store and keywords."""

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from peoples_thread.processing import load_keywords, save_keywords
from peoples_thread.storage import ArticleDatabase

app = typer.Typer(
    name="peoples-thread",
    help="Peoples Thread - Inspect ingested articles and monitored keywords",
    no_args_is_help=True,
)
console = Console()


@app.command()
def recent(
    days: int = typer.Option(7, "--days", "-d", help="Show articles from last N days"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max articles to show"),
) -> None:
    """Show recently ingested articles."""
    db = ArticleDatabase()
    articles = db.get_recent_articles(days=days, limit=limit)

    if not articles:
        console.print("[yellow]No recent articles found[/yellow]")
        return

    table = Table(title=f"Recent Articles (last {days} day(s))")
    table.add_column("Created", style="dim", width=11)
    table.add_column("Category", style="cyan", width=14)
    table.add_column("Title", width=50)
    table.add_column("Slug", style="green", width=30)

    for article in articles:
        table.add_row(
            article.created_at.strftime("%m/%d %H:%M"),
            article.category.value,
            article.title[:50] + ("..." if len(article.title) > 50 else ""),
            article.slug[:30],
        )

    console.print(table)


@app.command()
def search(
    query: str = typer.Argument(..., help="Search query (supports full-text search)"),
    category: str = typer.Option(None, "--category", "-c", help="Filter by category"),
    limit: int = typer.Option(20, "--limit", "-l", help="Max results"),
) -> None:
    """Search stored articles using full-text search."""
    db = ArticleDatabase()
    results = db.search_articles(query=query, category=category, limit=limit)

    if not results:
        console.print(f"[yellow]No results found for '{query}'[/yellow]")
        return

    table = Table(title=f"Search Results: '{query}'")
    table.add_column("Date", style="dim", width=10)
    table.add_column("Category", style="cyan", width=14)
    table.add_column("Title", width=50)
    table.add_column("Source", style="green", width=40)

    for article in results:
        table.add_row(
            article.created_at.strftime("%Y-%m-%d"),
            article.category.value,
            article.title[:50] + ("..." if len(article.title) > 50 else ""),
            (article.source_url or "")[:40],
        )

    console.print(table)
    console.print(f"\n[dim]Found {len(results)} results[/dim]")


@app.command()
def stats(
    days: int = typer.Option(30, "--days", "-d", help="Stats for last N days"),
) -> None:
    """Show ingestion statistics."""
    db = ArticleDatabase()
    stats_data = db.get_stats(days=days)

    console.print(Panel(f"[bold]Ingestion Statistics[/bold]\nLast {days} days", style="blue"))

    console.print(f"\n[bold]Total Articles:[/bold] {stats_data['total_articles']:,}")
    console.print(
        f"[bold]Ingestion Runs:[/bold] {stats_data['ingestion_runs']} "
        f"({stats_data['failed_runs']} failed)"
    )

    if stats_data["articles_by_category"]:
        console.print("\n[bold]Articles by Category:[/bold]")
        table = Table(show_header=False)
        table.add_column("Category", width=20)
        table.add_column("Count", justify="right")

        for category, count in stats_data["articles_by_category"].items():
            table.add_row(category, str(count))

        console.print(table)


@app.command()
def keywords() -> None:
    """List monitored keywords."""
    current = load_keywords()
    console.print(f"[bold]{len(current)} monitored keywords[/bold]")
    console.print(", ".join(current))


@app.command("add-keyword")
def add_keyword(
    words: list[str] = typer.Argument(..., help="Keywords to start monitoring"),
) -> None:
    """Add monitored keywords."""
    saved = save_keywords(load_keywords() + words)
    console.print(f"[green]Now monitoring {len(saved)} keywords[/green]")


@app.command("remove-keyword")
def remove_keyword(
    words: list[str] = typer.Argument(..., help="Keywords to stop monitoring"),
) -> None:
    """Remove monitored keywords."""
    removed = {w.strip().lower() for w in words}
    current = load_keywords()
    missing = removed - set(current)
    if missing:
        console.print(f"[yellow]Not monitored: {', '.join(sorted(missing))}[/yellow]")
    saved = save_keywords([k for k in current if k not in removed])
    console.print(f"[green]Now monitoring {len(saved)} keywords[/green]")


@app.command()
def check(
    urls: list[str] = typer.Argument(..., help="Feed article URLs to look up"),
) -> None:
    """Check whether feed URLs already have an article."""
    db = ArticleDatabase()
    existing = db.find_by_source_urls(urls)

    table = Table(title="Existing Articles")
    table.add_column("URL", width=50)
    table.add_column("Article", style="green", width=40)

    for url in urls:
        article = existing.get(url)
        table.add_row(url[:50], article.slug if article else "[dim]none[/dim]")

    console.print(table)
    console.print(f"\n[dim]{len(existing)}/{len(urls)} already ingested[/dim]")


if __name__ == "__main__":
    app()
