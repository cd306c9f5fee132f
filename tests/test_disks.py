import pytest

from virtcheck.disks import count_disk_containers, list_vmi_pods, verify_disk_count
from virtcheck.errors import Mismatch
from virtcheck.factories import (
    add_ephemeral_cdrom, container_disk_for, new_random_vmi_with_ephemeral_disk
)
from virtcheck.models import ContainerStatus, Pod, VMISpec
from virtcheck.readiness import await_ready


def pod(*containers, deleting=False):
    return Pod(
        name='virt-launcher-testvmi',
        deletion_timestamp='2024-01-01T00:00:00Z' if deleting else None,
        containers=tuple(ContainerStatus(name, ready) for name, ready in containers),
    )


def test_one_container_disk_found():
    spec = new_random_vmi_with_ephemeral_disk(container_disk_for('cirros'), 'ns')
    pods = [pod(('compute', True), ('volumedisk0', True))]

    assert verify_disk_count(spec, pods) == 1


def test_zero_container_disks_found():
    spec = VMISpec(name='nodisk', namespace='ns')

    assert verify_disk_count(spec, [pod(('compute', True))]) == 0


def test_terminating_pods_are_skipped():
    pods = [
        pod(('compute', True), ('volumedisk0', True), ('volumedisk1', True), deleting=True),
        pod(('compute', True), ('volumedisk0', True)),
    ]

    assert count_disk_containers(pods) == 1


def test_only_first_live_pod_is_inspected():
    pods = [
        pod(('compute', True), ('volumedisk0', True)),
        pod(('compute', True), ('volumedisk0', True), ('volumedisk1', True)),
    ]

    assert count_disk_containers(pods) == 1


def test_not_ready_and_unprefixed_containers_are_ignored():
    pods = [pod(('compute', True), ('volumedisk0', False), ('disk1', True), ('volumedisk2', True))]

    assert count_disk_containers(pods) == 1


def test_no_pods():
    assert count_disk_containers([]) == 0


def test_mismatch_reports_expected_and_found():
    spec = add_ephemeral_cdrom(
        new_random_vmi_with_ephemeral_disk(container_disk_for('alpine'), 'ns'),
        'disk4', 'sata', container_disk_for('virtio')
    )

    with pytest.raises(Mismatch) as excinfo:
        verify_disk_count(spec, [pod(('compute', True), ('volumedisk0', True))])

    assert excinfo.value.expected == 2
    assert excinfo.value.found == 1
    assert 'Expected 2' in str(excinfo.value)
    assert spec.identity in str(excinfo.value)


def test_pods_listed_by_vmi_uid(cluster):
    spec = add_ephemeral_cdrom(
        new_random_vmi_with_ephemeral_disk(container_disk_for('alpine'), 'ns'),
        'disk4', 'sata', container_disk_for('virtio')
    )
    other = new_random_vmi_with_ephemeral_disk(container_disk_for('cirros'), 'ns')
    vmi = cluster.create_vmi(spec)
    cluster.create_vmi(other)
    vmi = await_ready(cluster, vmi, timeout=5, poll_interval=0)

    pods = list_vmi_pods(cluster, vmi)

    assert [p.name for p in pods] == [f"virt-launcher-{spec.name}"]
    assert verify_disk_count(spec, pods) == 2
