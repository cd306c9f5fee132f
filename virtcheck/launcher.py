#!/usr/bin/env python3
"""
Submission and verification of VMIs.

Submitting a VMI never waits for it to boot, so several launches can be
issued back to back and their boot windows overlap. Verification of each
launch record runs independently of the others.
"""

import logging
import time
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass
from typing import Iterable, List, Optional

from virtcheck.config import DEFAULT_GONE_TIMEOUT, DEFAULT_POLL_INTERVAL, DEFAULT_START_TIMEOUT
from virtcheck.disks import list_vmi_pods, verify_disk_count
from virtcheck.errors import NotFound
from virtcheck.models import LaunchRecord, VirtualMachineInstance, VMISpec
from virtcheck.readiness import await_gone, await_ready
from virtcheck.utils.common import LOGGER_NAME


@dataclass
class VerificationOutcome:
    """Result of verifying one launch record"""
    record: LaunchRecord
    vmi: Optional[VirtualMachineInstance] = None
    disks_found: Optional[int] = None
    error: Optional[Exception] = None
    elapsed: float = 0.0

    @property
    def ok(self) -> bool:
        return self.error is None

    def raise_for_error(self) -> None:
        if self.error is not None:
            raise self.error


class LaunchCoordinator:
    """Launches VMIs through a cluster client and verifies them"""

    def __init__(self, client, start_timeout: float = DEFAULT_START_TIMEOUT,
                 gone_timeout: float = DEFAULT_GONE_TIMEOUT,
                 poll_interval: float = DEFAULT_POLL_INTERVAL,
                 logger: Optional[logging.Logger] = None):
        self.client = client
        self.start_timeout = start_timeout
        self.gone_timeout = gone_timeout
        self.poll_interval = poll_interval
        self.logger = logger or logging.getLogger(LOGGER_NAME)

    def launch(self, spec: VMISpec) -> LaunchRecord:
        """Submit spec and return immediately with the server's response."""
        self.logger.info(f"[{spec.identity}] Starting VirtualMachineInstance")
        vmi = self.client.create_vmi(spec)
        self.logger.debug(f"[{spec.identity}] Created with uid {vmi.uid}")
        return LaunchRecord(spec=spec, vmi=vmi)

    def launch_many(self, specs: Iterable[VMISpec]) -> List[LaunchRecord]:
        """Submit specs back to back; records keep submission order."""
        specs = list(specs)
        names = [s.identity for s in specs]
        if len(set(names)) != len(names):
            raise ValueError(f"VMI names must be unique within a launch: {names}")
        return [self.launch(spec) for spec in specs]

    def await_ready(self, record: LaunchRecord, ignore_warnings: bool = False,
                    timeout: Optional[float] = None) -> VirtualMachineInstance:
        return await_ready(
            self.client, record.vmi,
            timeout=self.start_timeout if timeout is None else timeout,
            ignore_warnings=ignore_warnings,
            poll_interval=self.poll_interval,
            logger=self.logger
        )

    def verify(self, record: LaunchRecord, ignore_warnings: bool = False) -> VerificationOutcome:
        """
        Wait for record's VMI to start and check its container disks.

        Raises whatever the readiness wait or the disk check raises.
        """
        start = time.monotonic()
        vmi = self.await_ready(record, ignore_warnings=ignore_warnings)
        found = verify_disk_count(record.spec, list_vmi_pods(self.client, vmi), self.logger)
        return VerificationOutcome(record=record, vmi=vmi, disks_found=found,
                                   elapsed=time.monotonic() - start)

    def verify_many(self, records: List[LaunchRecord], ignore_warnings: bool = False,
                    concurrency: Optional[int] = None) -> List[VerificationOutcome]:
        """
        Verify every record in its own task.

        A failing or slow record does not hold back the others. Outcomes are
        returned in the order of records, each carrying its own error if any.
        """
        if not records:
            return []

        outcomes: List[Optional[VerificationOutcome]] = [None] * len(records)
        with ThreadPoolExecutor(max_workers=concurrency or len(records)) as executor:
            futures = {
                executor.submit(self.verify, record, ignore_warnings): idx
                for idx, record in enumerate(records)
            }

            for future in as_completed(futures):
                idx = futures[future]
                record = records[idx]
                try:
                    outcomes[idx] = future.result()
                except Exception as e:
                    self.logger.error(f"[{record.spec.identity}] Verification failed: {e}")
                    outcomes[idx] = VerificationOutcome(record=record, error=e)

        passed = sum(1 for o in outcomes if o.ok)
        self.logger.info(f"Verified {len(records)} VMIs: {passed} passed, {len(records) - passed} failed")
        return outcomes

    def stop(self, record: LaunchRecord) -> None:
        """
        Request deletion of record's VMI.

        Raises:
            NotFound: No VMI with that identity exists
        """
        self.logger.info(f"[{record.spec.identity}] Stopping VirtualMachineInstance")
        try:
            self.client.delete_vmi(record.spec.namespace, record.spec.name)
        except NotFound:
            self.logger.error(f"[{record.spec.identity}] Cannot stop VMI: not found")
            raise

    def await_gone(self, record: LaunchRecord, timeout: Optional[float] = None) -> None:
        await_gone(
            self.client, record.spec.namespace, record.spec.name,
            timeout=self.gone_timeout if timeout is None else timeout,
            poll_interval=self.poll_interval,
            logger=self.logger
        )
