#!/usr/bin/env python3
"""
Common utilities for the virtcheck CLI
"""
from datetime import datetime
from typing import List

from rich.console import Console
from rich.table import Table

console = Console()


def print_banner(title: str) -> None:
    """
    Print a formatted banner.

    Args:
        title: Banner title text
    """
    console.print()
    console.print("=" * 80)
    console.print(f"  {title}")
    console.print("=" * 80)
    console.print()


def generate_log_filename(prefix: str) -> str:
    """
    Generate a timestamped log filename.

    Args:
        prefix: Prefix for the log file (e.g., 'virtcheck-run')

    Returns:
        Log filename with timestamp
    """
    timestamp = datetime.now().strftime('%Y%m%d-%H%M%S')
    return f"{prefix}-{timestamp}.log"


def results_table(results: List, title: str = "Scenario Results") -> Table:
    """Build a rich table summarizing scenario results"""
    table = Table(title=title, show_header=True, header_style="bold cyan")
    table.add_column("Scenario", style="cyan")
    table.add_column("Status")
    table.add_column("Duration", justify="right")
    table.add_column("Error", style="dim", overflow="fold")

    for r in results:
        status = "[green]PASS[/green]" if r.passed else "[red]FAIL[/red]"
        table.add_row(r.name, status, f"{r.duration:.2f}s", r.error or "")
    return table
