#!/usr/bin/env python3
"""
Container disk attachment checks.

Every container disk of a VMI is served by a sidecar container in the
virt-launcher pod whose name starts with "volume".
"""

import logging
from typing import Iterable, List, Optional

from virtcheck.errors import Mismatch
from virtcheck.models import Pod, VirtualMachineInstance, VMISpec, unfinished_vmi_pod_selector
from virtcheck.utils.common import LOGGER_NAME

DISK_CONTAINER_PREFIX = 'volume'


def count_disk_containers(pods: Iterable[Pod]) -> int:
    """
    Count ready disk containers of the first pod not marked for deletion.

    Only one pod is inspected; a VMI is assumed to be backed by a single
    live virt-launcher pod.
    """
    for pod in pods:
        if pod.deletion_timestamp is not None:
            continue
        return sum(
            1 for c in pod.containers
            if c.name.startswith(DISK_CONTAINER_PREFIX) and c.ready
        )
    return 0


def verify_disk_count(spec: VMISpec, pods: List[Pod],
                      logger: Optional[logging.Logger] = None) -> int:
    """
    Check that each container disk declared in spec has a ready container.

    Returns:
        Number of ready disk containers found

    Raises:
        Mismatch: Found count differs from the declared container disks
    """
    logger = logger or logging.getLogger(LOGGER_NAME)
    expected = spec.container_disk_count()
    found = count_disk_containers(pods)
    logger.info(f"[{spec.identity}] Disk containers: expected {expected}, found {found}")

    if found != expected:
        names = ', '.join(p.name for p in pods) or 'no pods'
        raise Mismatch(expected, found, detail=f"{spec.identity}, pods: {names}")
    return found


def list_vmi_pods(client, vmi: VirtualMachineInstance) -> List[Pod]:
    labels, fields = unfinished_vmi_pod_selector(vmi)
    return client.list_pods(vmi.namespace, label_selector=labels, field_selector=fields)
