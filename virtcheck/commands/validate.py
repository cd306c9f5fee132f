#!/usr/bin/env python3
"""
Cluster validation command
"""
import logging
import shutil
import sys
from typing import Callable, List, Tuple

import click
from rich.console import Console
from rich.table import Table

from virtcheck.common import print_banner
from virtcheck.errors import KubectlError
from virtcheck.utils.common import setup_logging
from virtcheck.utils.kubectl import KubectlClient

console = Console()


class ClusterValidator:
    """Validates cluster readiness for the harness"""

    def __init__(self, client: KubectlClient, namespace: str, virtctl: str, logger: logging.Logger):
        self.client = client
        self.namespace = namespace
        self.virtctl = virtctl
        self.logger = logger
        self.results: List[Tuple[str, str, str]] = []

    def run_check(self, check_name: str, check_func: Callable[[], Tuple[bool, str]]) -> bool:
        """Run a validation check and track results"""
        self.logger.info(f"Checking: {check_name}...")
        try:
            passed, message = check_func()
        except (KubectlError, OSError) as e:
            self.logger.error(f"  ERROR: {e}")
            self.results.append((check_name, "ERROR", str(e)))
            return False

        status = "PASS" if passed else "FAIL"
        log = self.logger.info if passed else self.logger.error
        log(f"  {status}: {message}")
        self.results.append((check_name, status, message))
        return passed

    def check_kubectl_access(self) -> Tuple[bool, str]:
        """Verify kubectl is installed and can access the cluster"""
        self.client.cluster_info()
        return True, "kubectl is installed and cluster is accessible"

    def check_kubevirt_deployed(self) -> Tuple[bool, str]:
        """Verify a KubeVirt CR exists and is Deployed"""
        phase = self.client.kubevirt_phase()
        if phase is None:
            return False, "No KubeVirt resource found. Is KubeVirt installed?"
        if phase != 'Deployed':
            return False, f"KubeVirt phase is '{phase}' (expected: Deployed)"
        return True, "KubeVirt is deployed"

    def check_virtctl(self) -> Tuple[bool, str]:
        """Verify virtctl is available for console sessions"""
        path = shutil.which(self.virtctl)
        if not path:
            return False, f"'{self.virtctl}' not found on PATH (needed by console scenarios)"
        return True, f"virtctl found at {path}"

    def check_namespace(self) -> Tuple[bool, str]:
        if self.client.namespace_exists(self.namespace):
            return True, f"Namespace '{self.namespace}' exists"
        return True, f"Namespace '{self.namespace}' will be created on first run"

    def run_all(self) -> bool:
        checks = [
            ("kubectl access", self.check_kubectl_access),
            ("KubeVirt installation", self.check_kubevirt_deployed),
            ("virtctl binary", self.check_virtctl),
            ("Test namespace", self.check_namespace),
        ]
        return all([self.run_check(name, func) for name, func in checks])


@click.command('validate-cluster')
@click.pass_context
def validate_cluster(ctx):
    """
    Validate cluster prerequisites

    Checks that the cluster has all required components for running scenarios:
    - kubectl access
    - KubeVirt installation
    - virtctl binary for console sessions
    - Test namespace

    \b
    Examples:
      virtcheck validate-cluster
      virtcheck --kubeconfig ~/.kube/lab validate-cluster
    """
    print_banner("Cluster Validation")

    config = ctx.obj.config
    logger = setup_logging(ctx.obj.log_file, ctx.obj.log_level)
    client = KubectlClient(kubeconfig=config.kubeconfig, logger=logger)
    validator = ClusterValidator(client, config.namespace, config.virtctl, logger)

    ok = validator.run_all()

    table = Table(title="Validation Results", show_header=True, header_style="bold cyan")
    table.add_column("Check", style="cyan")
    table.add_column("Status")
    table.add_column("Message")
    for name, status, message in validator.results:
        color = "green" if status == "PASS" else "red"
        table.add_row(name, f"[{color}]{status}[/{color}]", message)

    console.print()
    console.print(table)
    console.print()
    sys.exit(0 if ok else 1)
