#!/usr/bin/env python3
"""
Polling waits for VMI readiness and disappearance.

Both waits re-fetch the object at a fixed interval until a condition holds
or a wall-clock deadline passes. They only observe; nothing is mutated.
"""

import logging
import time
from typing import Callable, Optional, Set

from virtcheck.config import DEFAULT_GONE_TIMEOUT, DEFAULT_POLL_INTERVAL, DEFAULT_START_TIMEOUT
from virtcheck.errors import Aborted, NotFound, Timeout, WarningObserved
from virtcheck.models import VirtualMachineInstance
from virtcheck.utils.common import LOGGER_NAME

PHASE_RUNNING = 'Running'
TERMINAL_PHASES = ('Failed', 'Succeeded')


def is_running(vmi: VirtualMachineInstance) -> bool:
    return vmi.phase == PHASE_RUNNING


def _check_warnings(client, vmi: VirtualMachineInstance, seen: Set[str],
                    ignore_warnings: bool, logger: logging.Logger) -> None:
    for event in client.list_warning_events(vmi.namespace, vmi.uid):
        if event.uid in seen:
            continue
        seen.add(event.uid)
        if not ignore_warnings:
            raise WarningObserved(
                f"[{vmi.identity}] Warning event during start: {event.reason}: {event.message}",
                reason=event.reason,
                event_message=event.message
            )
        logger.warning(f"[{vmi.identity}] Ignoring warning event {event.reason}: {event.message}")


def await_ready(client, vmi: VirtualMachineInstance,
                timeout: float = DEFAULT_START_TIMEOUT,
                ignore_warnings: bool = False,
                predicate: Callable[[VirtualMachineInstance], bool] = is_running,
                poll_interval: float = DEFAULT_POLL_INTERVAL,
                logger: Optional[logging.Logger] = None) -> VirtualMachineInstance:
    """
    Wait until a VMI is successfully started.

    Args:
        client: Cluster client (see KubectlClient)
        vmi: Object returned when the VMI was submitted
        timeout: Maximum wait in seconds
        ignore_warnings: Log Warning events instead of failing on them
        predicate: Success condition over the re-fetched VMI
        poll_interval: Seconds between status checks
        logger: Logger instance

    Returns:
        The first observed VMI for which predicate holds

    Raises:
        Aborted: The VMI vanished, was replaced or reached a terminal phase
        WarningObserved: A Warning event was recorded and ignore_warnings is False
        Timeout: The deadline passed first
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    logger.info(f"[{vmi.identity}] Waiting up to {timeout}s for VMI to start...")

    start = time.monotonic()
    deadline = start + timeout
    last_phase = vmi.phase
    seen_events = set()

    while True:
        try:
            current = client.get_vmi(vmi.namespace, vmi.name)
        except NotFound:
            raise Aborted(
                f"[{vmi.identity}] VMI disappeared before starting (last phase: {last_phase or 'unknown'})",
                last_phase
            )

        if vmi.uid and current.uid != vmi.uid:
            raise Aborted(f"[{vmi.identity}] VMI was replaced by {current.uid} while waiting", last_phase)

        if current.phase != last_phase:
            logger.debug(f"[{vmi.identity}] Phase {last_phase or '<none>'} -> {current.phase or '<none>'}")
        last_phase = current.phase

        _check_warnings(client, current, seen_events, ignore_warnings, logger)

        if predicate(current):
            logger.info(f"[{vmi.identity}] VMI started after {time.monotonic() - start:.2f}s")
            return current

        if current.phase in TERMINAL_PHASES:
            raise Aborted(f"[{vmi.identity}] VMI reached terminal phase {current.phase}", current.phase)
        if current.deletion_timestamp:
            raise Aborted(f"[{vmi.identity}] VMI is being deleted (phase: {current.phase})", current.phase)

        if time.monotonic() >= deadline:
            raise Timeout(
                f"[{vmi.identity}] VMI did not start within {timeout}s (last phase: {last_phase or 'unknown'})",
                last_phase=last_phase
            )
        time.sleep(poll_interval)


def await_gone(client, namespace: str, name: str,
               timeout: float = DEFAULT_GONE_TIMEOUT,
               poll_interval: float = DEFAULT_POLL_INTERVAL,
               logger: Optional[logging.Logger] = None) -> None:
    """
    Wait until a VMI can no longer be fetched.

    Raises:
        Timeout: The VMI still resolves after timeout seconds
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    identity = f"{namespace}/{name}"
    logger.info(f"[{identity}] Waiting up to {timeout}s for VMI to disappear...")

    deadline = time.monotonic() + timeout
    last_phase = None

    while True:
        try:
            last_phase = client.get_vmi(namespace, name).phase
        except NotFound:
            logger.info(f"[{identity}] VMI is gone")
            return

        if time.monotonic() >= deadline:
            raise Timeout(
                f"[{identity}] VMI still present after {timeout}s (last phase: {last_phase or 'unknown'})",
                last_phase=last_phase
            )
        time.sleep(poll_interval)
