# zramscale/core/errors.py
"""Error taxonomy and process exit codes."""

from dataclasses import dataclass
from enum import IntEnum
from typing import List, Optional


class ExitCode(IntEnum):
    """Stable exit statuses, one per fatal condition."""
    OK = 0
    PRIVILEGE_REQUIRED = 2
    SETUP_FAILED = 3
    PROBE_FAILED = 4
    LOCK_CONTENTION = 5
    CONFIG_INVALID = 6
    INTERRUPTED = 130


class ZramScaleError(Exception):
    """Base class for all zramscale errors."""

    kind = "error"
    exit_code = ExitCode.SETUP_FAILED


class ProbeError(ZramScaleError):
    """Memory or device counters could not be read."""

    kind = "probe_error"
    exit_code = ExitCode.PROBE_FAILED


class CommandError(ZramScaleError):
    """An external command (modprobe, mkswap, swapon, ...) failed."""

    kind = "command_error"

    def __init__(self, command: List[str], returncode: int, stderr: str = ""):
        self.command = list(command)
        self.returncode = returncode
        self.stderr = (stderr or "").strip()
        detail = f": {self.stderr}" if self.stderr else ""
        super().__init__(f"'{' '.join(self.command)}' exited with {returncode}{detail}")


@dataclass
class DeviceFailure:
    """One failed step while configuring a device.

    ``index`` is None for failures that are not tied to a single device,
    such as loading the kernel module.
    """
    index: Optional[int]
    step: str
    message: str

    def __str__(self) -> str:
        target = f"zram{self.index}" if self.index is not None else "zram module"
        return f"{target}: {self.step} failed: {self.message}"

    def to_dict(self) -> dict:
        return {'index': self.index, 'step': self.step, 'message': self.message}


class ApplyError(ZramScaleError):
    """Aggregate of every device step that failed during one apply."""

    kind = "apply_error"
    exit_code = ExitCode.SETUP_FAILED

    def __init__(self, failures: List[DeviceFailure], active_devices: int = 0):
        self.failures = list(failures)
        self.active_devices = active_devices
        summary = "; ".join(str(f) for f in self.failures)
        super().__init__(
            f"{len(self.failures)} step(s) failed, {active_devices} device(s) active: {summary}"
        )


class LockContentionError(ZramScaleError):
    """Another controller instance already holds the host lock."""

    kind = "lock_contention"
    exit_code = ExitCode.LOCK_CONTENTION


class PrivilegeError(ZramScaleError):
    """The process may not change swap or device state."""

    kind = "privilege_error"
    exit_code = ExitCode.PRIVILEGE_REQUIRED


class ConfigError(ZramScaleError):
    """Configuration values are missing or out of range."""

    kind = "config_error"
    exit_code = ExitCode.CONFIG_INVALID


class BenchmarkError(ZramScaleError):
    """The compression benchmark could not create or drive its scratch device."""

    kind = "benchmark_error"
    exit_code = ExitCode.SETUP_FAILED
