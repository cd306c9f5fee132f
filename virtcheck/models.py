#!/usr/bin/env python3
"""
Typed views of the objects the harness submits and observes.

VMISpec is what the harness asks for; VirtualMachineInstance, Pod and Event
are read-only snapshots of what the cluster reports back.
"""

import copy
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

API_VERSION = 'kubevirt.io/v1'
VMI_KIND = 'VirtualMachineInstance'

# Labels kubevirt puts on virt-launcher pods
APP_LABEL = 'kubevirt.io'
CREATED_BY_LABEL = 'kubevirt.io/created-by'


class VolumeKind(Enum):
    CONTAINER_DISK = 'containerDisk'
    CLOUD_INIT_NO_CLOUD = 'cloudInitNoCloud'
    EMPTY_DISK = 'emptyDisk'
    EPHEMERAL = 'ephemeral'


@dataclass(frozen=True)
class Volume:
    """A named volume together with the device it is exposed as."""
    name: str
    kind: VolumeKind
    device: str = 'disk'
    bus: str = 'virtio'
    image: Optional[str] = None
    path: Optional[str] = None
    user_data: Optional[str] = None
    capacity: Optional[str] = None
    claim_name: Optional[str] = None

    def disk_manifest(self) -> Dict[str, Any]:
        return {'name': self.name, self.device: {'bus': self.bus}}

    def volume_manifest(self) -> Dict[str, Any]:
        if self.kind == VolumeKind.CONTAINER_DISK:
            source = {'image': self.image}
            if self.path:
                source['path'] = self.path
        elif self.kind == VolumeKind.CLOUD_INIT_NO_CLOUD:
            source = {'userData': self.user_data or ''}
        elif self.kind == VolumeKind.EMPTY_DISK:
            source = {'capacity': self.capacity or '1Gi'}
        else:
            source = {'persistentVolumeClaim': {'claimName': self.claim_name}}
        return {'name': self.name, self.kind.value: source}


@dataclass(frozen=True)
class VMISpec:
    """
    Immutable description of a VirtualMachineInstance to create.

    Derived specs are built with dataclasses.replace, so a spec handed to the
    cluster can never be changed behind the caller's back.
    """
    name: str
    namespace: str
    memory: str = '64M'
    cpu_cores: Optional[int] = None
    volumes: Tuple[Volume, ...] = ()
    termination_grace_period: int = 0

    @property
    def identity(self) -> str:
        return f"{self.namespace}/{self.name}"

    def container_disk_count(self) -> int:
        return sum(1 for v in self.volumes if v.kind == VolumeKind.CONTAINER_DISK)

    def with_volume(self, volume: Volume) -> 'VMISpec':
        return replace(self, volumes=self.volumes + (volume,))

    def to_manifest(self) -> Dict[str, Any]:
        """Render the spec as a kubevirt.io/v1 VirtualMachineInstance manifest."""
        domain = {
            'resources': {'requests': {'memory': self.memory}},
            'devices': {'disks': [v.disk_manifest() for v in self.volumes]},
        }
        if self.cpu_cores:
            domain['cpu'] = {'cores': self.cpu_cores}

        metadata = {'name': self.name, 'namespace': self.namespace}

        return {
            'apiVersion': API_VERSION,
            'kind': VMI_KIND,
            'metadata': metadata,
            'spec': {
                'terminationGracePeriodSeconds': self.termination_grace_period,
                'domain': domain,
                'volumes': [v.volume_manifest() for v in self.volumes],
            },
        }


@dataclass(frozen=True)
class VirtualMachineInstance:
    """Server-side view of a VMI at one point in time."""
    name: str
    namespace: str
    uid: str
    phase: str = ''
    deletion_timestamp: Optional[str] = None
    node_name: Optional[str] = None
    spec: Dict[str, Any] = field(default_factory=dict, compare=False)

    @property
    def identity(self) -> str:
        return f"{self.namespace}/{self.name}"

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VirtualMachineInstance':
        metadata = data.get('metadata', {})
        status = data.get('status', {}) or {}
        return cls(
            name=metadata.get('name', ''),
            namespace=metadata.get('namespace', ''),
            uid=metadata.get('uid', ''),
            phase=status.get('phase', '') or '',
            deletion_timestamp=metadata.get('deletionTimestamp'),
            node_name=status.get('nodeName'),
            spec=copy.deepcopy(data.get('spec', {})),
        )


@dataclass(frozen=True)
class ContainerStatus:
    name: str
    ready: bool


@dataclass(frozen=True)
class Pod:
    name: str
    deletion_timestamp: Optional[str] = None
    containers: Tuple[ContainerStatus, ...] = ()

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Pod':
        metadata = data.get('metadata', {})
        statuses = (data.get('status', {}) or {}).get('containerStatuses') or []
        return cls(
            name=metadata.get('name', ''),
            deletion_timestamp=metadata.get('deletionTimestamp'),
            containers=tuple(
                ContainerStatus(name=s.get('name', ''), ready=bool(s.get('ready')))
                for s in statuses
            ),
        )


@dataclass(frozen=True)
class Event:
    uid: str
    type: str
    reason: str
    message: str

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'Event':
        return cls(
            uid=data.get('metadata', {}).get('uid', ''),
            type=data.get('type', ''),
            reason=data.get('reason', ''),
            message=data.get('message', ''),
        )


@dataclass(frozen=True)
class LaunchRecord:
    """A submitted spec paired with the object the cluster returned for it."""
    spec: VMISpec
    vmi: VirtualMachineInstance


def unfinished_vmi_pod_selector(vmi: VirtualMachineInstance) -> Tuple[str, str]:
    """
    Build the selectors matching the live virt-launcher pods of a VMI.

    Returns:
        Tuple of (label_selector, field_selector)
    """
    labels = f"{APP_LABEL}=virt-launcher,{CREATED_BY_LABEL}={vmi.uid}"
    fields = "status.phase!=Failed,status.phase!=Succeeded"
    return labels, fields


def parse_items(data: Dict[str, Any]) -> List[Dict[str, Any]]:
    return data.get('items', []) or []
