#!/usr/bin/env python3
"""
Harness configuration defaults and the settings object shared by commands
"""

from dataclasses import dataclass
from typing import Optional

DEFAULT_NAMESPACE = 'kubevirt-test-default'
DEFAULT_CONTAINER_PREFIX = 'kubevirt'
DEFAULT_CONTAINER_TAG = 'latest'
DEFAULT_VIRTCTL = 'virtctl'
DEFAULT_POLL_INTERVAL = 1
DEFAULT_START_TIMEOUT = 180
DEFAULT_GONE_TIMEOUT = 120
DEFAULT_CONSOLE_TIMEOUT = 200
DEFAULT_VMI_MEMORY = '64M'
DEFAULT_MULTI_LAUNCH_COUNT = 5
DEFAULT_RESULTS_FOLDER = 'results'


@dataclass
class HarnessConfig:
    """Settings for one harness run"""
    namespace: str = DEFAULT_NAMESPACE
    container_prefix: str = DEFAULT_CONTAINER_PREFIX
    container_tag: str = DEFAULT_CONTAINER_TAG
    kubeconfig: Optional[str] = None
    virtctl: str = DEFAULT_VIRTCTL
    poll_interval: float = DEFAULT_POLL_INTERVAL
    start_timeout: float = DEFAULT_START_TIMEOUT
    gone_timeout: float = DEFAULT_GONE_TIMEOUT
    console_timeout: float = DEFAULT_CONSOLE_TIMEOUT
    vmi_memory: str = DEFAULT_VMI_MEMORY
    multi_launch_count: int = DEFAULT_MULTI_LAUNCH_COUNT
    results_folder: str = DEFAULT_RESULTS_FOLDER

    def validate(self) -> None:
        """Raise ValueError on settings that cannot work."""
        if not self.namespace:
            raise ValueError("namespace must not be empty")
        if self.poll_interval < 0:
            raise ValueError("poll interval must be >= 0")
        for name in ('start_timeout', 'gone_timeout', 'console_timeout'):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name.replace('_', ' ')} must be > 0")
        if self.multi_launch_count < 1:
            raise ValueError("multi launch count must be >= 1")
