"""
Core module for the ZRAM rescaling controller.

- Error taxonomy and stable exit codes
- Cooperative shutdown signalling
- Host-wide single-instance lock

The controller itself lives in ``zramscale.core.controller`` and is imported
from there, since it depends on the service layer.
"""

from .errors import (
    ExitCode, ZramScaleError, ProbeError, CommandError, DeviceFailure,
    ApplyError, LockContentionError, PrivilegeError, ConfigError, BenchmarkError
)
from .signal_handler import SignalHandler
from .instance_lock import InstanceLock

__all__ = [
    'ExitCode',
    'ZramScaleError',
    'ProbeError',
    'CommandError',
    'DeviceFailure',
    'ApplyError',
    'LockContentionError',
    'PrivilegeError',
    'ConfigError',
    'BenchmarkError',
    'SignalHandler',
    'InstanceLock'
]
