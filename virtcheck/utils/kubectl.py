#!/usr/bin/env python3
"""
kubectl-backed client for the objects the harness reads and writes.

A KubectlClient instance is the only handle to the cluster; it is passed
explicitly into every harness component.
"""

import json
import logging
import subprocess
from typing import Any, Dict, List, Optional

import yaml

from virtcheck.errors import KubectlError, NotFound
from virtcheck.models import Event, Pod, VirtualMachineInstance, VMISpec, parse_items
from virtcheck.utils.common import LOGGER_NAME, run_kubectl_command

DEFAULT_COMMAND_TIMEOUT = 60
NOT_FOUND_MARKER = '(NotFound)'


class KubectlClient:
    """Thin typed wrapper around the kubectl CLI"""

    def __init__(self, kubeconfig: Optional[str] = None, timeout: int = DEFAULT_COMMAND_TIMEOUT,
                 logger: Optional[logging.Logger] = None):
        self.kubeconfig = kubeconfig
        self.timeout = timeout
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def _run(self, args: List[str], input: Optional[str] = None) -> str:
        try:
            returncode, stdout, stderr = run_kubectl_command(
                args,
                check=False,
                timeout=self.timeout,
                input=input,
                kubeconfig=self.kubeconfig,
                logger=self.logger
            )
        except subprocess.TimeoutExpired as e:
            raise KubectlError(f"kubectl {' '.join(args[:3])} timed out after {self.timeout}s") from e
        if returncode != 0:
            stderr = (stderr or '').strip()
            # "resource mapping not found" (CRD missing) is not a missing object
            if NOT_FOUND_MARKER in stderr:
                raise NotFound(stderr, returncode, stderr)
            raise KubectlError(f"kubectl {' '.join(args[:3])} failed: {stderr}", returncode, stderr)
        return stdout

    def _run_json(self, args: List[str], input: Optional[str] = None) -> Dict[str, Any]:
        stdout = self._run(args + ['-o', 'json'], input=input)
        try:
            return json.loads(stdout) if stdout.strip() else {}
        except json.JSONDecodeError as e:
            raise KubectlError(f"Unparseable kubectl output for {' '.join(args[:3])}: {e}")

    # VirtualMachineInstances

    def create_vmi(self, spec: VMISpec) -> VirtualMachineInstance:
        manifest = yaml.safe_dump(spec.to_manifest(), default_flow_style=False, sort_keys=False)
        data = self._run_json(['create', '-f', '-', '-n', spec.namespace], input=manifest)
        return VirtualMachineInstance.from_dict(data)

    def get_vmi(self, namespace: str, name: str) -> VirtualMachineInstance:
        data = self._run_json(['get', 'virtualmachineinstance', name, '-n', namespace])
        return VirtualMachineInstance.from_dict(data)

    def delete_vmi(self, namespace: str, name: str) -> None:
        self._run(['delete', 'virtualmachineinstance', name, '-n', namespace, '--wait=false'])

    def list_vmis(self, namespace: str) -> List[VirtualMachineInstance]:
        data = self._run_json(['get', 'virtualmachineinstances', '-n', namespace])
        return [VirtualMachineInstance.from_dict(item) for item in parse_items(data)]

    # Pods and events

    def list_pods(self, namespace: str, label_selector: str = '',
                  field_selector: str = '') -> List[Pod]:
        args = ['get', 'pods', '-n', namespace]
        if label_selector:
            args += ['-l', label_selector]
        if field_selector:
            args += ['--field-selector', field_selector]
        return [Pod.from_dict(item) for item in parse_items(self._run_json(args))]

    def list_warning_events(self, namespace: str, uid: str) -> List[Event]:
        data = self._run_json([
            'get', 'events', '-n', namespace,
            '--field-selector', f"involvedObject.uid={uid},type=Warning"
        ])
        return [Event.from_dict(item) for item in parse_items(data)]

    # Namespaces and cluster

    def namespace_exists(self, namespace: str) -> bool:
        try:
            self._run(['get', 'namespace', namespace])
            return True
        except NotFound:
            return False

    def create_namespace(self, namespace: str) -> None:
        if self.namespace_exists(namespace):
            self.logger.debug(f"Namespace {namespace} already exists")
            return
        self._run(['create', 'namespace', namespace])
        self.logger.info(f"Created namespace: {namespace}")

    def cluster_info(self) -> str:
        return self._run(['cluster-info'])

    def kubevirt_phase(self) -> Optional[str]:
        """Phase of the first KubeVirt CR in the cluster, or None if absent."""
        items = parse_items(self._run_json(['get', 'kubevirt', '-A']))
        if not items:
            return None
        return items[0].get('status', {}).get('phase', 'Unknown')
