import pytest
from unittest.mock import MagicMock

from rich.panel import Panel
from rich.table import Table

from poscache.infrastructure.cache.serializer import Envelope
from poscache.infrastructure.cli.display import ConsoleDisplay


@pytest.fixture
def mock_console():
    """Fixture to create a mock rich Console object."""
    return MagicMock()


@pytest.fixture
def console_display(mock_console: MagicMock):
    """Fixture to create a ConsoleDisplay instance with a mocked console."""
    display = ConsoleDisplay()
    display.console = mock_console  # Inject the mock
    return display


def test_display_error(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_error("Durable store unreachable")
    mock_console.print.assert_called_once_with("[bold red]Error:[/bold red] Durable store unreachable")


def test_display_info(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_info("Purged 3 expired record(s).")
    mock_console.print.assert_called_once_with("[blue]Info:[/blue] Purged 3 expired record(s).")


def test_display_stats_prints_a_table(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_stats({"hits": 3, "misses": 1, "hit_rate": 75.0}, title="Stats")
    [table], _ = mock_console.print.call_args
    assert isinstance(table, Table)
    assert table.title == "Stats"
    assert table.row_count == 3


def test_display_envelope_prints_metadata_and_value(console_display: ConsoleDisplay, mock_console: MagicMock):
    envelope = Envelope(value={"sku": "A"}, created_at=1000.0, ttl_seconds=60, tags=("products",))
    console_display.display_envelope("product:1", envelope, now=1030.0)
    assert mock_console.print.call_count == 2
    assert all(isinstance(c.args[0], Panel) for c in mock_console.print.call_args_list)


def test_display_settings(console_display: ConsoleDisplay, mock_console: MagicMock):
    console_display.display_settings({"max_size": 10, "namespace": None})
    [table], _ = mock_console.print.call_args
    assert table.row_count == 2
