# src/interface/cli.py

from typing import List, Optional

from rich import box
from rich.console import Console
from rich.panel import Panel
from rich.prompt import FloatPrompt, IntPrompt, Prompt
from rich.table import Table

from src.domain.criteria import SearchCriteria
from src.domain.models import SearchResult


console = Console()

# Default prompt origin: Praça da Sé, São Paulo
DEFAULT_LATITUDE = -23.5505
DEFAULT_LONGITUDE = -46.6333

TIER_STYLES = {
    "platinum": "bold magenta",
    "gold":     "bold yellow",
    "silver":   "white",
    "standard": "cyan",
    "free":     "dim",
}


def display_welcome_banner() -> None:
    console.print(Panel.fit(
        "[bold cyan]📍 Provider Discovery[/bold cyan]\n"
        "[dim]Radius search ranked by tier, rating and distance[/dim]",
        box=box.DOUBLE,
        border_style="cyan",
    ))


def display_store_status(num_providers: int, tier_stats: List[dict]) -> None:
    breakdown = ", ".join(f"{s['tier']}: {s['count']}" for s in tier_stats if s["count"])
    console.print(
        f"\n[green]✓[/green] Store ready — [bold]{num_providers}[/bold] providers indexed"
        + (f" [dim]({breakdown})[/dim]" if breakdown else "")
        + "\n"
    )


def prompt_for_search() -> dict:
    """Collect raw search inputs; validation happens in SearchCriteria.build()."""
    latitude = FloatPrompt.ask("\n[bold yellow]Latitude[/bold yellow]", default=DEFAULT_LATITUDE)
    longitude = FloatPrompt.ask("[bold yellow]Longitude[/bold yellow]", default=DEFAULT_LONGITUDE)
    radius_km = FloatPrompt.ask("[bold yellow]Radius (km)[/bold yellow]", default=10.0)
    services = Prompt.ask("[dim]Service ids, comma separated (blank = any)[/dim]", default="")
    min_rating = Prompt.ask("[dim]Minimum rating (blank = any)[/dim]", default="")
    tiers = Prompt.ask("[dim]Tiers, comma separated (blank = any)[/dim]", default="")
    term = Prompt.ask("[dim]Name contains (blank = any)[/dim]", default="")
    page = IntPrompt.ask("[dim]Page[/dim]", default=1)

    return {
        "latitude":    latitude,
        "longitude":   longitude,
        "radius_km":   radius_km,
        "service_ids": _split(services),
        "min_rating":  float(min_rating) if min_rating.strip() else None,
        "tiers":       _split(tiers),
        "term":        term or None,
        "page":        page,
    }


def display_results(criteria: SearchCriteria, result: SearchResult) -> None:
    console.print(
        f"\n[bold]Within {criteria.radius_km:g} km of[/bold] "
        f"[italic]{criteria.origin.latitude:.4f}, {criteria.origin.longitude:.4f}[/italic] "
        f"— page {result.page}/{max(result.total_pages, 1)}, "
        f"{result.total_matches} match(es)\n"
    )

    if not result.hits:
        console.print("[dim]No providers on this page.[/dim]")
        return

    table = Table(box=box.ROUNDED, show_lines=False)
    table.add_column("#", justify="right", style="dim")
    table.add_column("Provider", style="bold white")
    table.add_column("Tier")
    table.add_column("Rating", justify="right")
    table.add_column("Reviews", justify="right", style="dim")
    table.add_column("Distance", justify="right")
    table.add_column("City", style="dim")

    for rank, hit in enumerate(result.hits, start=criteria.skip + 1):
        record = hit.record
        tier = record.subscription_tier.value
        rating_color = _rating_to_color(record.average_rating)
        rating = "—" if record.average_rating is None else f"{record.average_rating:.1f}"
        table.add_row(
            str(rank),
            record.display_name,
            f"[{TIER_STYLES[tier]}]{tier}[/{TIER_STYLES[tier]}]",
            f"[{rating_color}]{rating}[/{rating_color}]",
            str(record.review_count),
            f"{hit.distance_km:.2f} km",
            record.city or "",
        )

    console.print(table)


def display_error(message: str) -> None:
    console.print(f"\n[bold red]✗ Error:[/bold red] {message}\n")


def ask_continue() -> bool:
    answer = Prompt.ask(
        "\n[dim]Search again?[/dim]",
        choices=["y", "n"],
        default="y",
    )
    return answer.lower() == "y"


def _split(raw: str) -> Optional[List[str]]:
    items = [item.strip() for item in raw.split(",") if item.strip()]
    return items or None


def _rating_to_color(rating: Optional[float]) -> str:
    if rating is None:
        return "dim"
    elif rating >= 4.5:
        return "green"
    elif rating >= 3.5:
        return "yellow"
    else:
        return "red"
