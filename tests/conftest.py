"""
Shared fixtures: an in-memory cluster and a scripted console channel.
"""

import copy
import itertools
import logging
import re
import threading

import pexpect
import pytest

from virtcheck.errors import KubectlError, NotFound
from virtcheck.models import (
    CREATED_BY_LABEL, ContainerStatus, Event, Pod, VirtualMachineInstance, VolumeKind
)
from virtcheck.utils.common import LOGGER_NAME


class FakeCluster:
    """
    Stands in for KubectlClient.

    A VMI becomes Running after `boot_polls` reads (None: never) and
    disappears `vanish_polls` reads after deletion.
    """

    def __init__(self, boot_polls=2, vanish_polls=2):
        self.boot_polls = boot_polls
        self.vanish_polls = vanish_polls
        self.boot_overrides = {}
        self.mutate_spec_on_start = False
        self.namespaces = set()
        self.vmis = {}
        self.events = {}
        self.created = []
        self.deleted = []
        self._uids = itertools.count(1)
        self._lock = threading.Lock()

    # VMIs

    def create_vmi(self, spec):
        key = (spec.namespace, spec.name)
        with self._lock:
            if key in self.vmis:
                raise KubectlError(f'virtualmachineinstances "{spec.name}" AlreadyExists')
            state = {
                'name': spec.name,
                'namespace': spec.namespace,
                'uid': f"uid-{next(self._uids)}",
                'phase': '',
                'polls': 0,
                'boot': self.boot_overrides.get(spec.name, self.boot_polls),
                'deleting': None,
                'spec': spec.to_manifest()['spec'],
                'disks': [v.name for v in spec.volumes if v.kind == VolumeKind.CONTAINER_DISK],
            }
            self.vmis[key] = state
            self.created.append(spec.name)
            return self._view(state)

    def get_vmi(self, namespace, name):
        with self._lock:
            state = self.vmis.get((namespace, name))
            if state is None:
                raise NotFound(f'virtualmachineinstances "{name}" not found')
            if state['deleting'] is not None:
                state['deleting'] -= 1
                if state['deleting'] <= 0:
                    del self.vmis[(namespace, name)]
                    raise NotFound(f'virtualmachineinstances "{name}" not found')
                return self._view(state)

            state['polls'] += 1
            if state['boot'] is not None and state['polls'] >= state['boot']:
                if state['phase'] != 'Running' and self.mutate_spec_on_start:
                    state['spec']['running'] = True
                state['phase'] = 'Running'
            elif state['phase'] in ('', 'Scheduling'):
                state['phase'] = 'Scheduling'
            return self._view(state)

    def delete_vmi(self, namespace, name):
        with self._lock:
            state = self.vmis.get((namespace, name))
            if state is None:
                raise NotFound(f'virtualmachineinstances "{name}" not found')
            if state['deleting'] is None:
                state['deleting'] = self.vanish_polls
            self.deleted.append(name)

    def list_vmis(self, namespace):
        with self._lock:
            return [self._view(s) for (ns, _), s in self.vmis.items() if ns == namespace]

    def set_phase(self, name, phase):
        for state in self.vmis.values():
            if state['name'] == name:
                state['phase'] = phase
                state['boot'] = None

    def _view(self, state):
        return VirtualMachineInstance(
            name=state['name'],
            namespace=state['namespace'],
            uid=state['uid'],
            phase=state['phase'],
            deletion_timestamp='2024-01-01T00:00:00Z' if state['deleting'] is not None else None,
            spec=copy.deepcopy(state['spec']),
        )

    # Pods and events

    def list_pods(self, namespace, label_selector='', field_selector=''):
        match = re.search(re.escape(CREATED_BY_LABEL) + r'=([\w-]+)', label_selector)
        uid = match.group(1) if match else None
        pods = []
        with self._lock:
            for state in self.vmis.values():
                if state['namespace'] != namespace or state['uid'] != uid:
                    continue
                ready = state['phase'] == 'Running'
                containers = [ContainerStatus('compute', ready)]
                containers += [ContainerStatus(f"volume{d}", ready) for d in state['disks']]
                pods.append(Pod(name=f"virt-launcher-{state['name']}", containers=tuple(containers)))
        return pods

    def add_warning(self, name, reason='SyncFailed', message='failed to create tap device'):
        for state in self.vmis.values():
            if state['name'] == name:
                events = self.events.setdefault(state['uid'], [])
                events.append(Event(uid=f"ev-{len(events)}", type='Warning', reason=reason, message=message))

    def list_warning_events(self, namespace, uid):
        return list(self.events.get(uid, []))

    # Namespaces

    def namespace_exists(self, namespace):
        return namespace in self.namespaces

    def create_namespace(self, namespace):
        self.namespaces.add(namespace)


class FakeChannel:
    """
    pexpect-like console.

    `responder(command)` returns the output produced by each sent line.
    Commands are not echoed back.
    """

    def __init__(self, responder=None, eof_on_miss=False):
        self.responder = responder or (lambda command: '')
        self.eof_on_miss = eof_on_miss
        self.buffer = ''
        self.before = ''
        self.sent = []
        self.expected = []
        self.closed = False

    def sendline(self, command):
        if self.closed:
            raise OSError('channel closed')
        self.sent.append(command)
        self.buffer += self.responder(command)

    def expect(self, pattern, timeout=None):
        self.expected.append((pattern, timeout))
        match = re.search(pattern, self.buffer)
        if match:
            self.before = self.buffer[:match.start()]
            self.buffer = self.buffer[match.end():]
            return 0
        self.before = self.buffer
        if self.eof_on_miss:
            raise pexpect.EOF('End Of File (EOF)')
        raise pexpect.TIMEOUT('Timeout exceeded.')

    def close(self):
        self.closed = True


@pytest.fixture
def cluster():
    return FakeCluster()


@pytest.fixture
def logger():
    return logging.getLogger(LOGGER_NAME)


@pytest.fixture(autouse=True)
def reset_logger():
    yield
    logging.getLogger(LOGGER_NAME).handlers.clear()
