#!/usr/bin/env python3
"""
Exceptions raised by the virtcheck harness.

Every harness failure carries enough context (last observed phase, unmatched
console output, expected vs. found counts) for a human to tell a harness bug
from a regression in the cluster under test.
"""

from typing import Optional


class KubectlError(Exception):
    """A kubectl invocation failed."""

    def __init__(self, message: str, returncode: int = 1, stderr: str = ''):
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


class NotFound(KubectlError):
    """The requested object does not exist."""


class HarnessError(Exception):
    """Base class for harness failures surfaced to a scenario."""


class Timeout(HarnessError):
    """A deadline elapsed while polling or matching console output."""

    def __init__(self, message: str, last_phase: Optional[str] = None,
                 step: Optional[int] = None, buffer: str = ''):
        super().__init__(message)
        self.last_phase = last_phase
        self.step = step
        self.buffer = buffer


class WarningObserved(HarnessError):
    """A Warning event was recorded for the object during a strict wait."""

    def __init__(self, message: str, reason: str = '', event_message: str = ''):
        super().__init__(message)
        self.reason = reason
        self.event_message = event_message


class Mismatch(HarnessError):
    """The number of attached disk containers differs from the spec."""

    def __init__(self, expected: int, found: int, detail: str = ''):
        message = f"Expected {expected} disk container(s), found {found}"
        if detail:
            message = f"{message} ({detail})"
        super().__init__(message)
        self.expected = expected
        self.found = found


class Aborted(HarnessError):
    """The object disappeared or terminated before becoming ready."""

    def __init__(self, message: str, last_phase: Optional[str] = None):
        super().__init__(message)
        self.last_phase = last_phase


class ChannelError(HarnessError):
    """The console transport failed before the script completed."""

    def __init__(self, message: str, step: Optional[int] = None, buffer: str = ''):
        super().__init__(message)
        self.step = step
        self.buffer = buffer


class SpecChanged(HarnessError):
    """The cluster's view of a VMI spec changed after submission."""

    def __init__(self, message: str, changed_keys=()):
        super().__init__(message)
        self.changed_keys = tuple(changed_keys)
