#!/usr/bin/env python3
"""
virtcheck - ContainerDisk VMI end-to-end harness CLI

Main entry point for the virtcheck command-line interface.
"""

import click

import virtcheck
from virtcheck.commands import run, scenarios, validate, version
from virtcheck.config import (
    DEFAULT_CONTAINER_PREFIX,
    DEFAULT_CONTAINER_TAG,
    DEFAULT_NAMESPACE,
    DEFAULT_VIRTCTL,
    HarnessConfig,
)


class Context:
    """Global context for sharing state between commands"""

    def __init__(self):
        self.log_level = "info"
        self.log_file = None
        self.config = HarnessConfig()


@click.group()
@click.version_option(version=virtcheck.__version__, prog_name="virtcheck")
@click.option(
    "--log-level",
    default="info",
    type=click.Choice(["debug", "info", "warning", "error"], case_sensitive=False),
    help="Log level",
)
@click.option("--log-file", type=click.Path(), help="Log file path (auto-generated if not specified)")
@click.option("--kubeconfig", type=click.Path(),
              help="Path to kubeconfig file (kubectl and virtctl fall back to $KUBECONFIG)")
@click.option("--namespace", "-n", default=DEFAULT_NAMESPACE, envvar="VIRTCHECK_NAMESPACE",
              show_default=True, help="Namespace the test VMIs are created in")
@click.option("--container-prefix", default=DEFAULT_CONTAINER_PREFIX, envvar="VIRTCHECK_CONTAINER_PREFIX",
              show_default=True, help="Registry prefix of the demo container disks")
@click.option("--container-tag", default=DEFAULT_CONTAINER_TAG, envvar="VIRTCHECK_CONTAINER_TAG",
              show_default=True, help="Tag of the demo container disks")
@click.option("--virtctl", default=DEFAULT_VIRTCTL, envvar="VIRTCHECK_VIRTCTL",
              show_default=True, help="virtctl binary used for console sessions")
@click.pass_context
def cli(ctx, log_level, log_file, kubeconfig, namespace, container_prefix, container_tag, virtctl):
    """
    virtcheck - ContainerDisk VMI end-to-end harness

    Launches KubeVirt VMIs backed by container disks, waits for them to
    start, checks their disk containers and drives console sessions.

    \b
    Available Commands:
      run                  Run end-to-end scenarios
      list-scenarios       List available scenarios
      validate-cluster     Validate cluster prerequisites
      version              Print version information

    \b
    Examples:
      # Run every scenario
      virtcheck run

      # Run selected scenarios and keep the results
      virtcheck run start-stop-repeat multiple-vmis --save-results

      # Use a private registry for the container disks
      virtcheck --container-prefix registry.local/kubevirt run virtio-cdrom
    """
    ctx.obj = Context()
    ctx.obj.log_level = log_level.lower()
    ctx.obj.log_file = log_file
    ctx.obj.config = HarnessConfig(
        namespace=namespace,
        container_prefix=container_prefix,
        container_tag=container_tag,
        kubeconfig=kubeconfig,
        virtctl=virtctl,
    )


# Register subcommands
cli.add_command(run.run)
cli.add_command(scenarios.list_scenarios)
cli.add_command(validate.validate_cluster)
cli.add_command(version.version)


def main():
    """Entry point for CLI"""
    cli(obj=None)


if __name__ == "__main__":
    main()
