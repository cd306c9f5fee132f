import json
import subprocess

import pytest
import yaml

from virtcheck.errors import KubectlError, NotFound
from virtcheck.factories import container_disk_for, new_random_vmi_with_ephemeral_disk
from virtcheck.utils.kubectl import KubectlClient

VMI_JSON = {
    'apiVersion': 'kubevirt.io/v1',
    'kind': 'VirtualMachineInstance',
    'metadata': {'name': 'testvmi', 'namespace': 'ns', 'uid': 'abc-123'},
    'spec': {'domain': {'devices': {}}},
    'status': {'phase': 'Scheduled'},
}


class FakeKubectl:
    """Records kubectl invocations and replies with canned results"""

    def __init__(self, returncode=0, stdout='', stderr=''):
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr
        self.calls = []

    def __call__(self, cmd, **kwargs):
        self.calls.append((cmd, kwargs))
        return subprocess.CompletedProcess(cmd, self.returncode, self.stdout, self.stderr)


@pytest.fixture
def kubectl(monkeypatch):
    fake = FakeKubectl(stdout=json.dumps(VMI_JSON))
    monkeypatch.setattr(subprocess, 'run', fake)
    return fake


def test_create_sends_manifest_on_stdin(kubectl):
    spec = new_random_vmi_with_ephemeral_disk(container_disk_for('cirros'), 'ns')

    vmi = KubectlClient().create_vmi(spec)

    cmd, kwargs = kubectl.calls[0]
    assert cmd == ['kubectl', 'create', '-f', '-', '-n', 'ns', '-o', 'json']
    assert yaml.safe_load(kwargs['input']) == spec.to_manifest()
    assert vmi.uid == 'abc-123'
    assert vmi.phase == 'Scheduled'


def test_kubeconfig_is_passed(kubectl):
    KubectlClient(kubeconfig='/tmp/kubeconfig').get_vmi('ns', 'testvmi')

    cmd, _ = kubectl.calls[0]
    assert cmd[:3] == ['kubectl', '--kubeconfig', '/tmp/kubeconfig']
    assert cmd[3:] == ['get', 'virtualmachineinstance', 'testvmi', '-n', 'ns', '-o', 'json']


def test_get_missing_vmi_raises_not_found(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(
        returncode=1,
        stderr='Error from server (NotFound): virtualmachineinstances.kubevirt.io "testvmi" not found\n'
    ))

    with pytest.raises(NotFound):
        KubectlClient().get_vmi('ns', 'testvmi')


def test_delete_missing_vmi_raises_not_found(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(returncode=1, stderr='Error from server (NotFound)'))

    with pytest.raises(NotFound):
        KubectlClient().delete_vmi('ns', 'testvmi')


def test_other_failures_raise_kubectl_error(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(
        returncode=1, stderr='Unable to connect to the server: dial tcp 10.0.0.1:6443: i/o timeout'
    ))

    with pytest.raises(KubectlError) as excinfo:
        KubectlClient().get_vmi('ns', 'testvmi')

    assert not isinstance(excinfo.value, NotFound)
    assert 'i/o timeout' in excinfo.value.stderr


def test_unparseable_output(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(stdout='not json'))

    with pytest.raises(KubectlError):
        KubectlClient().get_vmi('ns', 'testvmi')


def test_list_pods_with_selectors(monkeypatch):
    fake = FakeKubectl(stdout=json.dumps({'items': [{
        'metadata': {'name': 'virt-launcher-testvmi-abcde'},
        'status': {'containerStatuses': [
            {'name': 'compute', 'ready': True},
            {'name': 'volumedisk0', 'ready': True},
        ]},
    }]}))
    monkeypatch.setattr(subprocess, 'run', fake)

    pods = KubectlClient().list_pods('ns', label_selector='a=b', field_selector='status.phase!=Failed')

    cmd, _ = fake.calls[0]
    assert cmd == ['kubectl', 'get', 'pods', '-n', 'ns', '-l', 'a=b',
                   '--field-selector', 'status.phase!=Failed', '-o', 'json']
    assert [c.name for c in pods[0].containers] == ['compute', 'volumedisk0']


def test_list_warning_events_by_uid(monkeypatch):
    fake = FakeKubectl(stdout=json.dumps({'items': [{
        'metadata': {'uid': 'ev1'}, 'type': 'Warning', 'reason': 'SyncFailed', 'message': 'boom'
    }]}))
    monkeypatch.setattr(subprocess, 'run', fake)

    events = KubectlClient().list_warning_events('ns', 'abc-123')

    cmd, _ = fake.calls[0]
    assert '--field-selector' in cmd
    assert 'involvedObject.uid=abc-123,type=Warning' in cmd
    assert events[0].reason == 'SyncFailed'


def test_create_namespace_skips_existing(kubectl):
    KubectlClient().create_namespace('ns')

    assert len(kubectl.calls) == 1
    assert kubectl.calls[0][0] == ['kubectl', 'get', 'namespace', 'ns']


def test_kubevirt_phase(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(stdout=json.dumps({
        'items': [{'metadata': {'name': 'kubevirt'}, 'status': {'phase': 'Deployed'}}]
    })))

    assert KubectlClient().kubevirt_phase() == 'Deployed'


def test_kubevirt_phase_absent(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(stdout=json.dumps({'items': []})))

    assert KubectlClient().kubevirt_phase() is None


def test_command_timeout_raises_kubectl_error(monkeypatch):
    def hang(cmd, **kwargs):
        raise subprocess.TimeoutExpired(cmd, kwargs.get('timeout'))

    monkeypatch.setattr(subprocess, 'run', hang)

    with pytest.raises(KubectlError) as excinfo:
        KubectlClient(timeout=5).cluster_info()

    assert not isinstance(excinfo.value, NotFound)
    assert 'timed out after 5s' in str(excinfo.value)


def test_missing_kubevirt_crd_is_not_a_missing_object(monkeypatch):
    monkeypatch.setattr(subprocess, 'run', FakeKubectl(
        returncode=1,
        stderr='error: resource mapping not found for name: "testvmi" namespace: "ns" from "STDIN": '
               'no matches for kind "VirtualMachineInstance" in version "kubevirt.io/v1"'
    ))
    spec = new_random_vmi_with_ephemeral_disk(container_disk_for('cirros'), 'ns')

    with pytest.raises(KubectlError) as excinfo:
        KubectlClient().create_vmi(spec)

    assert not isinstance(excinfo.value, NotFound)
    assert 'no matches for kind' in excinfo.value.stderr
