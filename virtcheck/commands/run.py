#!/usr/bin/env python3
"""
Scenario run command
"""
import sys

import click
from rich.console import Console

from virtcheck.common import generate_log_filename, print_banner, results_table
from virtcheck.config import (
    DEFAULT_CONSOLE_TIMEOUT,
    DEFAULT_GONE_TIMEOUT,
    DEFAULT_MULTI_LAUNCH_COUNT,
    DEFAULT_POLL_INTERVAL,
    DEFAULT_RESULTS_FOLDER,
    DEFAULT_START_TIMEOUT,
    DEFAULT_VMI_MEMORY,
)
from virtcheck.results import save_results
from virtcheck.scenarios import SCENARIOS, ScenarioContext, run_scenarios
from virtcheck.utils.common import setup_logging
from virtcheck.utils.kubectl import KubectlClient

console = Console()


@click.command('run')
@click.argument('names', nargs=-1, type=click.Choice(list(SCENARIOS)))
@click.option('--poll-interval', default=DEFAULT_POLL_INTERVAL, type=float, help='Seconds between status checks')
@click.option('--start-timeout', default=DEFAULT_START_TIMEOUT, type=float, help='Seconds to wait for a VMI to start')
@click.option('--gone-timeout', default=DEFAULT_GONE_TIMEOUT, type=float, help='Seconds to wait for a VMI to disappear')
@click.option('--console-timeout', default=DEFAULT_CONSOLE_TIMEOUT, type=float,
              help='Seconds allowed for console checks after login')
@click.option('--vmi-memory', default=DEFAULT_VMI_MEMORY, help='Memory requested by each test VMI')
@click.option('--count', default=DEFAULT_MULTI_LAUNCH_COUNT, type=int,
              help='Number of VMIs started together by multiple-vmis')
@click.option('--save-results', is_flag=True, help='Save results (JSON and CSV) to results folder')
@click.option('--results-folder', default=DEFAULT_RESULTS_FOLDER, help='Base directory to store results')
@click.option('--log-file', type=click.Path(), help='Log file path (auto-generated if not specified)')
@click.pass_context
def run(ctx, names, **kwargs):
    """
    Run end-to-end scenarios

    Runs the named scenarios in order (all of them when none is given).
    Every scenario starts from a namespace without VMIs.

    \b
    Examples:
      # Run every scenario
      virtcheck run

      # Start ten VMIs at once
      virtcheck run multiple-vmis --count 10

      # Console check with a longer boot allowance
      virtcheck run virtio-cdrom --start-timeout 600
    """
    print_banner("ContainerDisk End-to-End Scenarios")

    config = ctx.obj.config
    config.poll_interval = kwargs['poll_interval']
    config.start_timeout = kwargs['start_timeout']
    config.gone_timeout = kwargs['gone_timeout']
    config.console_timeout = kwargs['console_timeout']
    config.vmi_memory = kwargs['vmi_memory']
    config.multi_launch_count = kwargs['count']
    config.results_folder = kwargs['results_folder']

    try:
        config.validate()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        sys.exit(2)

    log_file = kwargs.get('log_file') or ctx.obj.log_file or generate_log_filename('virtcheck-run')
    logger = setup_logging(log_file, ctx.obj.log_level)

    selected = list(names) or list(SCENARIOS)
    logger.info(f"Namespace: {config.namespace}")
    logger.info(f"Container disks: {config.container_prefix}/*:{config.container_tag}")
    logger.info(f"Scenarios: {', '.join(selected)}")

    client = KubectlClient(kubeconfig=config.kubeconfig, logger=logger)
    scenario_ctx = ScenarioContext(client=client, config=config, logger=logger)

    try:
        results = run_scenarios(selected, scenario_ctx)
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted by user[/yellow]")
        sys.exit(130)

    console.print()
    console.print(results_table(results))
    console.print()

    if kwargs['save_results']:
        save_results(results, config.results_folder, namespace=config.namespace, logger=logger)

    failed = [r.name for r in results if not r.passed]
    if failed:
        console.print(f"[red]{len(failed)} scenario(s) failed: {', '.join(failed)}[/red]")
        sys.exit(1)
    console.print(f"[green]All {len(results)} scenario(s) passed[/green]")
