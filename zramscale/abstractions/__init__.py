"""Pure abstractions and types shared by every zramscale layer."""

from .interfaces import ISystemOps
from .types import (
    MIB, GIB, MemorySnapshot, ZramDeviceSpec, SizingPolicy, ScalingDecision,
    DecisionReason, ControllerState, StatusEvent, DeviceSettings
)

__all__ = [
    'ISystemOps',
    'MIB',
    'GIB',
    'MemorySnapshot',
    'ZramDeviceSpec',
    'SizingPolicy',
    'ScalingDecision',
    'DecisionReason',
    'ControllerState',
    'StatusEvent',
    'DeviceSettings'
]
