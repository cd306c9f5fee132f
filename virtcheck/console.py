#!/usr/bin/env python3
"""
Scripted interaction with a VMI serial console.

A ConsoleScript is an ordered list of steps. Each step writes one or more
command lines and then waits for a regular expression in the output. The
first step that does not match ends the session; the channel is closed on
every exit path.

Channels are pexpect spawn objects (or anything offering sendline, expect,
before and close).
"""

import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Tuple

import pexpect

from virtcheck.config import DEFAULT_CONSOLE_TIMEOUT, DEFAULT_VIRTCTL
from virtcheck.errors import ChannelError, Timeout
from virtcheck.models import VirtualMachineInstance
from virtcheck.utils.common import LOGGER_NAME

# Output of `echo $?` after a successful command, on a line of its own
EXIT_STATUS_OK = r'\n0\r?\n'

ALPINE_LOGIN_TIMEOUT = 180


class ConsoleState(Enum):
    IDLE = 'idle'
    SENDING = 'sending'
    MATCHING = 'matching'
    COMPLETED = 'completed'
    FAILED = 'failed'


@dataclass(frozen=True)
class ConsoleStep:
    commands: Tuple[str, ...]
    expect: str
    timeout: Optional[float] = None


def step(*commands: str, expect: str, timeout: Optional[float] = None) -> ConsoleStep:
    """Build a step sending each command as a line, then waiting for expect."""
    return ConsoleStep(commands=tuple(commands), expect=expect, timeout=timeout)


@dataclass(frozen=True)
class ConsoleScript:
    steps: Tuple[ConsoleStep, ...]
    timeout: float = DEFAULT_CONSOLE_TIMEOUT

    def then(self, other: 'ConsoleScript') -> 'ConsoleScript':
        """Run other on the same session after this script."""
        return ConsoleScript(steps=self.steps + other.steps, timeout=self.timeout + other.timeout)


@dataclass
class ConsoleResult:
    state: ConsoleState
    steps_completed: int
    elapsed: float


def _buffer_text(channel) -> str:
    before = getattr(channel, 'before', '')
    if isinstance(before, bytes):
        return before.decode('utf-8', errors='replace')
    if not isinstance(before, str):
        return ''
    return before


class ConsoleDriver:
    """Runs console scripts against channels produced by channel_factory"""

    def __init__(self, channel_factory: Callable[[VirtualMachineInstance], object],
                 logger: Optional[logging.Logger] = None):
        self.channel_factory = channel_factory
        self.logger = logger or logging.getLogger(LOGGER_NAME)
        self.state = ConsoleState.IDLE
        self.step_index: Optional[int] = None

    def _enter(self, state: ConsoleState, index: Optional[int] = None) -> None:
        self.state = state
        self.step_index = index

    def _fail(self, error: Exception) -> Exception:
        self.state = ConsoleState.FAILED
        return error

    def run(self, script: ConsoleScript, vmi: VirtualMachineInstance) -> ConsoleResult:
        """
        Open a console to vmi and play script on it.

        Returns:
            ConsoleResult in state COMPLETED

        Raises:
            Timeout: A step's pattern did not show up in time
            ChannelError: The console closed or failed before the script finished
        """
        self._enter(ConsoleState.IDLE)
        start = time.monotonic()
        deadline = start + script.timeout

        try:
            channel = self.channel_factory(vmi)
        except (OSError, pexpect.ExceptionPexpect) as e:
            raise self._fail(ChannelError(f"[{vmi.identity}] Could not open console: {e}"))

        try:
            for index, current in enumerate(script.steps):
                self._play_step(channel, vmi, index, current, deadline)
        except BaseException:
            self.state = ConsoleState.FAILED
            self._close(channel, vmi, quiet=True)
            raise
        self._close(channel, vmi)

        self._enter(ConsoleState.COMPLETED, len(script.steps))
        elapsed = time.monotonic() - start
        self.logger.info(f"[{vmi.identity}] Console script completed in {elapsed:.2f}s")
        return ConsoleResult(state=self.state, steps_completed=len(script.steps), elapsed=elapsed)

    def _close(self, channel, vmi: VirtualMachineInstance, quiet: bool = False) -> None:
        """Close channel; with quiet, a close failure is only logged so the pending error wins."""
        try:
            channel.close()
        except (OSError, pexpect.ExceptionPexpect) as e:
            if not quiet:
                self.state = ConsoleState.FAILED
                raise ChannelError(f"[{vmi.identity}] Could not close console: {e}") from e
            self.logger.warning(f"[{vmi.identity}] Could not close console: {e}")

    def _play_step(self, channel, vmi: VirtualMachineInstance, index: int,
                   current: ConsoleStep, deadline: float) -> None:
        self._enter(ConsoleState.SENDING, index)
        try:
            for command in current.commands:
                self.logger.debug(f"[{vmi.identity}] console> {command}")
                channel.sendline(command)
        except (OSError, pexpect.ExceptionPexpect) as e:
            raise self._fail(ChannelError(
                f"[{vmi.identity}] Console write failed at step {index + 1}: {e}", step=index
            ))

        self._enter(ConsoleState.MATCHING, index)
        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise self._fail(Timeout(
                f"[{vmi.identity}] Console session timed out before step {index + 1}",
                step=index, buffer=_buffer_text(channel)
            ))
        wait = min(current.timeout, remaining) if current.timeout else remaining

        try:
            channel.expect(current.expect, timeout=wait)
        except pexpect.TIMEOUT:
            buffer = _buffer_text(channel)
            raise self._fail(Timeout(
                f"[{vmi.identity}] Step {index + 1}: {current.expect!r} not seen within {wait:.0f}s; "
                f"unmatched output: {buffer!r}",
                step=index, buffer=buffer
            ))
        except pexpect.EOF:
            buffer = _buffer_text(channel)
            raise self._fail(ChannelError(
                f"[{vmi.identity}] Console closed at step {index + 1} waiting for {current.expect!r}; "
                f"unmatched output: {buffer!r}",
                step=index, buffer=buffer
            ))
        except (OSError, pexpect.ExceptionPexpect) as e:
            raise self._fail(ChannelError(
                f"[{vmi.identity}] Console read failed at step {index + 1}: {e}",
                step=index, buffer=_buffer_text(channel)
            ))


def virtctl_console(virtctl: str = DEFAULT_VIRTCTL, kubeconfig: Optional[str] = None,
                    connect_timeout_minutes: int = 5) -> Callable[[VirtualMachineInstance], object]:
    """
    Channel factory spawning `virtctl console` for a VMI.
    """
    def spawn(vmi: VirtualMachineInstance):
        args = ['console', vmi.name, '-n', vmi.namespace, f'--timeout={connect_timeout_minutes}']
        if kubeconfig:
            args += ['--kubeconfig', kubeconfig]
        return pexpect.spawn(virtctl, args, encoding='utf-8', codec_errors='replace')

    return spawn


ALPINE_LOGIN = ConsoleScript(
    steps=(
        step('', expect='localhost login:'),
        step('root', expect='localhost:~#'),
    ),
    timeout=ALPINE_LOGIN_TIMEOUT,
)
