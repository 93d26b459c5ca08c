"""Rich console output helpers."""

from rich.console import Console
from rich.table import Table

console = Console()


def ok(msg: str):
    """Print success message."""
    console.print(f"  [green]✓[/green] {msg}")


def fail(msg: str):
    """Print failure message."""
    console.print(f"  [red]✗[/red] {msg}")


def dim(msg: str):
    """Print dimmed message."""
    console.print(f"  [dim]{msg}[/dim]")


def header(msg: str):
    """Print bold header."""
    console.print(f"\n[bold]{msg}[/bold]")


def make_scan_table(df, columns) -> Table:
    """Table of selected columns of an element-count scan."""
    table = Table(show_header=True, header_style="bold cyan", border_style="dim")
    table.add_column("nelement", style="dim", justify="right")
    for column in columns:
        table.add_column(column, justify="right")
    for _, row in df.iterrows():
        table.add_row(str(int(row["nelement"])), *(f"{row[c]:.3e}" for c in columns))
    return table
