# zramscale/abstractions/types/__init__.py
"""Type definitions for the abstractions layer."""

from .zram_types import (
    MIB, GIB, DEFAULT_MINIMUM_CAPACITY_BYTES,
    MemorySnapshot, ZramDeviceSpec, SizingPolicy, ScalingDecision,
    DecisionReason, ControllerState, StatusEvent, DeviceSettings, SUPPORTED_ALGORITHMS
)

__all__ = [
    'MIB',
    'GIB',
    'DEFAULT_MINIMUM_CAPACITY_BYTES',
    'MemorySnapshot',
    'ZramDeviceSpec',
    'SizingPolicy',
    'ScalingDecision',
    'DecisionReason',
    'ControllerState',
    'StatusEvent',
    'DeviceSettings',
    'SUPPORTED_ALGORITHMS'
]
