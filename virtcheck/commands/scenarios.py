#!/usr/bin/env python3
"""
Scenario listing command
"""
import click
from rich.console import Console
from rich.table import Table

from virtcheck.scenarios import SCENARIOS

console = Console()


@click.command('list-scenarios')
def list_scenarios():
    """
    List available scenarios
    """
    table = Table(title="virtcheck Scenarios", show_header=True, header_style="bold cyan")
    table.add_column("Name", style="cyan")
    table.add_column("Description", style="green")

    for name, entry in SCENARIOS.items():
        table.add_row(name, entry.description)

    console.print()
    console.print(table)
    console.print()
