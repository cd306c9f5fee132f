#!/usr/bin/env python3
"""
Version command
"""
import sys

import click
from rich.console import Console
from rich.table import Table

import virtcheck

console = Console()


@click.command('version')
def version():
    """
    Print version information

    Displays version information for virtcheck and its components.
    """
    table = Table(title="virtcheck Version Information", show_header=True, header_style="bold cyan")
    table.add_column("Component", style="cyan")
    table.add_column("Version", style="green")

    table.add_row("virtcheck", virtcheck.__version__)
    table.add_row("Python", get_python_version())
    table.add_row("Click", get_package_version('click'))
    table.add_row("Rich", get_package_version('rich'))
    table.add_row("PyYAML", get_package_version('PyYAML'))
    table.add_row("pexpect", get_package_version('pexpect'))

    console.print()
    console.print(table)
    console.print()


def get_python_version() -> str:
    """Get Python version"""
    return f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}"


def get_package_version(package_name: str) -> str:
    """Get package version"""
    import importlib.metadata
    try:
        return importlib.metadata.version(package_name)
    except importlib.metadata.PackageNotFoundError:
        return 'not installed'
