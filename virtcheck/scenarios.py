#!/usr/bin/env python3
"""
ContainerDisk end-to-end scenarios.

Each scenario runs in a clean namespace: every VMI left there by an earlier
run is deleted, and awaited, before the scenario starts.
"""

import logging
import time
from dataclasses import dataclass, field, replace
from typing import Callable, Dict, List, Optional

from virtcheck.config import DEFAULT_CONSOLE_TIMEOUT, HarnessConfig
from virtcheck.console import ALPINE_LOGIN, EXIT_STATUS_OK, ConsoleDriver, ConsoleScript, step, virtctl_console
from virtcheck.errors import NotFound, SpecChanged
from virtcheck.factories import (
    CONTAINER_DISK_ALPINE, CONTAINER_DISK_CIRROS, CONTAINER_DISK_VIRTIO, HELLO_USER_DATA,
    add_ephemeral_cdrom, container_disk_for, new_random_vmi_with_ephemeral_disk,
    new_random_vmi_with_ephemeral_disk_and_userdata, with_container_disk_path
)
from virtcheck.launcher import LaunchCoordinator
from virtcheck.readiness import await_gone

START_STOP_CYCLES = 2
CUSTOM_DISK_PATH = '/custom-disk/boot.img'

# iso9660 is the CD filesystem type; each step checks `echo $?` because a bare
# "0" pattern also matches echoed input.
VIRTIO_CDROM_CHECK = ConsoleScript(
    steps=(
        step('mount -t iso9660 /dev/cdrom', 'echo $?', expect=EXIT_STATUS_OK),
        step('cd /media/cdrom', 'ls virtio-win_license.txt guest-agent', 'echo $?', expect=EXIT_STATUS_OK),
    ),
    timeout=DEFAULT_CONSOLE_TIMEOUT,
)


@dataclass
class ScenarioContext:
    """Everything a scenario needs to talk to the cluster"""
    client: object
    config: HarnessConfig
    logger: logging.Logger
    console_factory: Optional[Callable] = None
    coordinator: LaunchCoordinator = field(init=False)

    def __post_init__(self):
        self.coordinator = LaunchCoordinator(
            self.client,
            start_timeout=self.config.start_timeout,
            gone_timeout=self.config.gone_timeout,
            poll_interval=self.config.poll_interval,
            logger=self.logger
        )
        if self.console_factory is None:
            self.console_factory = virtctl_console(self.config.virtctl, self.config.kubeconfig)

    def image(self, name: str) -> str:
        return container_disk_for(name, self.config.container_prefix, self.config.container_tag)


@dataclass(frozen=True)
class Scenario:
    name: str
    description: str
    func: Callable[[ScenarioContext], None]


@dataclass
class ScenarioResult:
    name: str
    passed: bool
    duration: float
    error: Optional[str] = None


SCENARIOS: Dict[str, Scenario] = {}


def scenario(name: str, description: str):
    def register(func):
        SCENARIOS[name] = Scenario(name=name, description=description, func=func)
        return func
    return register


@scenario('start-stop-repeat', 'Start and stop the same ephemeral VMI multiple times')
def start_stop_repeat(ctx: ScenarioContext) -> None:
    spec = new_random_vmi_with_ephemeral_disk_and_userdata(
        ctx.image(CONTAINER_DISK_CIRROS), HELLO_USER_DATA, ctx.config.namespace, ctx.config.vmi_memory
    )
    for cycle in range(1, START_STOP_CYCLES + 1):
        ctx.logger.info(f"[{spec.identity}] Start/stop cycle {cycle}/{START_STOP_CYCLES}")
        record = ctx.coordinator.launch(spec)
        ctx.coordinator.await_ready(record)
        ctx.coordinator.stop(record)
        ctx.coordinator.await_gone(record)


@scenario('spec-unchanged', 'Status updates must not modify the VMI spec')
def spec_unchanged(ctx: ScenarioContext) -> None:
    spec = new_random_vmi_with_ephemeral_disk_and_userdata(
        ctx.image(CONTAINER_DISK_CIRROS), HELLO_USER_DATA, ctx.config.namespace, ctx.config.vmi_memory
    )
    submitted = spec.to_manifest()

    record = ctx.coordinator.launch(spec)
    started = ctx.coordinator.await_ready(record)

    if spec.to_manifest() != submitted:
        raise SpecChanged(f"[{spec.identity}] Local spec was modified after submission")

    if started.spec != record.vmi.spec:
        keys = sorted(
            k for k in set(started.spec) | set(record.vmi.spec)
            if started.spec.get(k) != record.vmi.spec.get(k)
        )
        raise SpecChanged(f"[{spec.identity}] Spec changed on status update: {', '.join(keys)}", keys)


@scenario('multiple-vmis', 'Start several container disk VMIs at once')
def multiple_vmis(ctx: ScenarioContext) -> None:
    specs = [
        new_random_vmi_with_ephemeral_disk_and_userdata(
            ctx.image(CONTAINER_DISK_CIRROS), HELLO_USER_DATA, ctx.config.namespace, ctx.config.vmi_memory
        )
        for _ in range(ctx.config.multi_launch_count)
    ]
    records = ctx.coordinator.launch_many(specs)

    # Parallel starts can make libvirt fail creating the macvtap device once;
    # virt-handler retries and the VMI still starts, so warnings are ignored.
    outcomes = ctx.coordinator.verify_many(records, ignore_warnings=True)
    for outcome in outcomes:
        outcome.raise_for_error()


@scenario('custom-image-path', 'Boot from a container disk at a custom location')
def custom_image_path(ctx: ScenarioContext) -> None:
    spec = new_random_vmi_with_ephemeral_disk_and_userdata(
        ctx.image(CONTAINER_DISK_CIRROS), HELLO_USER_DATA, ctx.config.namespace, ctx.config.vmi_memory
    )
    spec = with_container_disk_path(spec, CUSTOM_DISK_PATH)
    record = ctx.coordinator.launch(spec)
    ctx.coordinator.await_ready(record)


@scenario('virtio-cdrom', 'Attach virtio-win as a sata CDROM and check its files')
def virtio_cdrom(ctx: ScenarioContext) -> None:
    spec = new_random_vmi_with_ephemeral_disk(
        ctx.image(CONTAINER_DISK_ALPINE), ctx.config.namespace, ctx.config.vmi_memory
    )
    spec = add_ephemeral_cdrom(spec, 'disk4', 'sata', ctx.image(CONTAINER_DISK_VIRTIO))

    record = ctx.coordinator.launch(spec)
    vmi = ctx.coordinator.await_ready(record)

    ctx.logger.info(f"[{spec.identity}] Checking whether the second disk contains virtio drivers")
    driver = ConsoleDriver(ctx.console_factory, ctx.logger)
    check = replace(VIRTIO_CDROM_CHECK, timeout=ctx.config.console_timeout)
    driver.run(ALPINE_LOGIN.then(check), vmi)


def cleanup_namespace(client, config: HarnessConfig, logger: logging.Logger) -> int:
    """
    Make sure the test namespace exists and holds no VMIs.

    Returns:
        Number of VMIs deleted
    """
    client.create_namespace(config.namespace)
    vmis = client.list_vmis(config.namespace)
    for vmi in vmis:
        try:
            client.delete_vmi(vmi.namespace, vmi.name)
            logger.debug(f"[{vmi.identity}] Deleted leftover VMI")
        except NotFound:
            logger.debug(f"[{vmi.identity}] Leftover VMI already gone")
    for vmi in vmis:
        await_gone(client, vmi.namespace, vmi.name, timeout=config.gone_timeout,
                   poll_interval=config.poll_interval, logger=logger)
    if vmis:
        logger.info(f"Removed {len(vmis)} leftover VMIs from {config.namespace}")
    return len(vmis)


def run_scenario(name: str, ctx: ScenarioContext) -> ScenarioResult:
    """Clean the namespace, run one scenario and record its outcome."""
    selected = SCENARIOS[name]
    ctx.logger.info("=" * 80)
    ctx.logger.info(f"Scenario: {selected.name} - {selected.description}")
    ctx.logger.info("=" * 80)

    start = time.monotonic()
    try:
        cleanup_namespace(ctx.client, ctx.config, ctx.logger)
        selected.func(ctx)
    except Exception as e:
        duration = time.monotonic() - start
        ctx.logger.error(f"Scenario {name} FAILED after {duration:.2f}s: {e}")
        return ScenarioResult(name=name, passed=False, duration=duration,
                              error=f"{type(e).__name__}: {e}")

    duration = time.monotonic() - start
    ctx.logger.info(f"Scenario {name} passed in {duration:.2f}s")
    return ScenarioResult(name=name, passed=True, duration=duration)


def run_scenarios(names: List[str], ctx: ScenarioContext) -> List[ScenarioResult]:
    unknown = [n for n in names if n not in SCENARIOS]
    if unknown:
        raise KeyError(f"Unknown scenario(s): {', '.join(unknown)}")
    return [run_scenario(name, ctx) for name in names]
