#!/usr/bin/env python3
"""
Constructors for the VMI specs used by the scenarios.

All helpers are pure: they return new VMISpec values and never touch the
cluster.
"""

import uuid
from dataclasses import replace

from virtcheck.config import DEFAULT_CONTAINER_PREFIX, DEFAULT_CONTAINER_TAG, DEFAULT_VMI_MEMORY
from virtcheck.models import Volume, VolumeKind, VMISpec

CONTAINER_DISK_CIRROS = 'cirros'
CONTAINER_DISK_ALPINE = 'alpine'
CONTAINER_DISK_VIRTIO = 'virtio'

HELLO_USER_DATA = "#!/bin/bash\necho 'hello'\n"


def container_disk_for(name: str, prefix: str = DEFAULT_CONTAINER_PREFIX,
                       tag: str = DEFAULT_CONTAINER_TAG) -> str:
    """Image reference of a demo container disk, e.g. kubevirt/cirros-container-disk-demo:latest"""
    return f"{prefix}/{name}-container-disk-demo:{tag}"


def random_vmi_name(prefix: str = 'testvmi') -> str:
    return f"{prefix}-{uuid.uuid4().hex[:8]}"


def new_random_vmi_with_ephemeral_disk(image: str, namespace: str,
                                       memory: str = DEFAULT_VMI_MEMORY) -> VMISpec:
    """VMI booting from a single container disk named disk0."""
    return VMISpec(
        name=random_vmi_name(),
        namespace=namespace,
        memory=memory,
        volumes=(Volume(name='disk0', kind=VolumeKind.CONTAINER_DISK, image=image),),
    )


def new_random_vmi_with_ephemeral_disk_and_userdata(image: str, user_data: str, namespace: str,
                                                    memory: str = DEFAULT_VMI_MEMORY) -> VMISpec:
    spec = new_random_vmi_with_ephemeral_disk(image, namespace, memory)
    return spec.with_volume(
        Volume(name='disk1', kind=VolumeKind.CLOUD_INIT_NO_CLOUD, user_data=user_data)
    )


def add_ephemeral_cdrom(spec: VMISpec, name: str, bus: str, image: str) -> VMISpec:
    """Return a copy of spec with a container disk attached as a cdrom."""
    return spec.with_volume(
        Volume(name=name, kind=VolumeKind.CONTAINER_DISK, device='cdrom', bus=bus, image=image)
    )


def with_container_disk_path(spec: VMISpec, path: str) -> VMISpec:
    """Return a copy of spec where every container disk is read from path inside its image."""
    volumes = tuple(
        replace(v, path=path) if v.kind == VolumeKind.CONTAINER_DISK else v
        for v in spec.volumes
    )
    return replace(spec, volumes=volumes)
