import logging
from datetime import datetime
from typing import Any, Mapping, Optional

from rich.box import ROUNDED, SIMPLE
from rich.console import Console
from rich.panel import Panel
from rich.pretty import Pretty
from rich.table import Table

from poscache.domain.models.common import CacheStats
from poscache.infrastructure.cache.serializer import Envelope

logger = logging.getLogger(__name__)


class ConsoleDisplay:
    """Renders cache stats, durable envelopes and settings with rich."""

    def __init__(self, console: Optional[Console] = None):
        self._console = console or Console()

    @property
    def console(self) -> Console:
        """Get the Rich console instance for direct operations."""
        return self._console

    @console.setter
    def console(self, console: Console) -> None:
        self._console = console

    def display_info(self, message: str) -> None:
        self._console.print(f"[blue]Info:[/blue] {message}")

    def display_error(self, message: str) -> None:
        self._console.print(f"[bold red]Error:[/bold red] {message}")

    def display_stats(self, stats: CacheStats, title: str = "Cache stats") -> None:
        table = Table(title=title, box=ROUNDED, show_header=True, header_style="bold cyan")
        table.add_column("Counter", style="bold")
        table.add_column("Value", justify="right")
        for name, value in stats.items():
            shown = f"{value:.2f}%" if name == "hit_rate" else str(value)
            table.add_row(name, shown)
        self._console.print(table)

    def display_envelope(self, key: str, envelope: Envelope, now: float) -> None:
        live = envelope.is_live(now)
        meta = Table.grid(padding=(0, 2))
        meta.add_column(style="dim")
        meta.add_column()
        meta.add_row("created", datetime.fromtimestamp(envelope.created_at).strftime("%Y-%m-%d %H:%M:%S"))
        meta.add_row("ttl", f"{envelope.ttl_seconds:.0f}s")
        meta.add_row("remaining", f"{envelope.remaining_ttl(now):.0f}s" if live else "[red]expired[/red]")
        meta.add_row("tags", ", ".join(envelope.tags) or "-")
        meta.add_row("compressed", "yes" if envelope.compressed else "no")
        self._console.print(Panel(meta, title=f"[bold]{key}[/bold]", box=SIMPLE))
        self._console.print(Panel(Pretty(envelope.value), title="value", box=ROUNDED))

    def display_settings(self, settings: Mapping[str, Any]) -> None:
        table = Table(title="Effective settings", box=ROUNDED, header_style="bold cyan")
        table.add_column("Setting", style="bold")
        table.add_column("Value")
        for name, value in settings.items():
            table.add_row(name, "-" if value is None else str(value))
        self._console.print(table)
