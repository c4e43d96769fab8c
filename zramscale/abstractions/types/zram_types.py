# zramscale/abstractions/types/zram_types.py
"""ZRAM sizing and device type definitions."""

from dataclasses import dataclass, field, asdict
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from zramscale.core.errors import ConfigError

MIB = 1024 * 1024
GIB = 1024 * MIB

DEFAULT_MINIMUM_CAPACITY_BYTES = 32 * MIB


class DecisionReason(Enum):
    """Why a scaling decision picked its ratio."""
    TIER_DEFAULT = "tier_default"
    PRESSURE_ELEVATED = "pressure_elevated"
    PRESSURE_EMERGENCY = "pressure_emergency"


class ControllerState(Enum):
    """Rescaling controller lifecycle states."""
    UNINITIALIZED = "uninitialized"
    APPLYING_INITIAL = "applying_initial"
    STATIC_IDLE = "static_idle"
    MONITORING = "monitoring"
    APPLYING_RESCALE = "applying_rescale"
    STOPPING = "stopping"
    STOPPED = "stopped"


@dataclass(frozen=True)
class MemorySnapshot:
    """System memory counters captured by a single read."""
    total_bytes: int
    available_bytes: int

    @property
    def used_bytes(self) -> int:
        return self.total_bytes - self.available_bytes

    @property
    def percent_used(self) -> float:
        if self.total_bytes <= 0:
            return 0.0
        return self.used_bytes / self.total_bytes * 100


@dataclass(frozen=True)
class ZramDeviceSpec:
    """Desired or live configuration of one /dev/zramN device."""
    index: int
    capacity_bytes: int
    compression_algorithm: str
    priority: int
    active: bool = True

    @property
    def device_path(self) -> str:
        return f"/dev/zram{self.index}"

    def matches(self, other: 'ZramDeviceSpec') -> bool:
        """True when ``other`` is configured the same way as this spec."""
        return (
            self.index == other.index
            and self.capacity_bytes == other.capacity_bytes
            and self.compression_algorithm == other.compression_algorithm
            and self.priority == other.priority
            and self.active == other.active
        )


@dataclass(frozen=True)
class SizingPolicy:
    """Immutable sizing configuration.

    Ratios are percentages of total RAM. Pressure thresholds are byte counts
    unless the matching ``*_percent`` field is set, in which case they are
    resolved against total RAM at evaluation time.
    """
    small_ratio: int = 60
    medium_ratio: int = 50
    large_ratio: int = 50
    low_pressure_threshold_bytes: int = 200 * MIB
    safe_pressure_threshold_bytes: int = 400 * MIB
    dynamic_scaling_enabled: bool = False
    minimum_capacity_bytes: int = DEFAULT_MINIMUM_CAPACITY_BYTES
    low_pressure_threshold_percent: Optional[float] = None
    safe_pressure_threshold_percent: Optional[float] = None

    def __post_init__(self):
        for name in ('small_ratio', 'medium_ratio', 'large_ratio'):
            value = getattr(self, name)
            if not 0 < value <= 100:
                raise ConfigError(f"{name} must be in (0, 100], got {value}")

        if self.minimum_capacity_bytes <= 0:
            raise ConfigError("minimum_capacity_bytes must be positive")

        low_pct = self.low_pressure_threshold_percent
        safe_pct = self.safe_pressure_threshold_percent
        if (low_pct is None) != (safe_pct is None):
            raise ConfigError("pressure thresholds must both be byte counts or both be percentages")

        if low_pct is not None:
            if not (0 < low_pct < 100 and 0 < safe_pct <= 100):
                raise ConfigError("percentage thresholds must be within (0, 100]")
            if low_pct >= safe_pct:
                raise ConfigError(
                    f"low pressure threshold ({low_pct}%) must be below safe threshold ({safe_pct}%)"
                )
        elif self.low_pressure_threshold_bytes >= self.safe_pressure_threshold_bytes:
            raise ConfigError(
                f"low pressure threshold ({self.low_pressure_threshold_bytes}) must be below "
                f"safe threshold ({self.safe_pressure_threshold_bytes})"
            )

    def thresholds_for(self, total_bytes: int) -> Tuple[int, int]:
        """Return the (low, safe) thresholds in bytes for a host with ``total_bytes`` RAM."""
        if self.low_pressure_threshold_percent is None:
            return self.low_pressure_threshold_bytes, self.safe_pressure_threshold_bytes
        low = int(total_bytes * self.low_pressure_threshold_percent / 100)
        safe = int(total_bytes * self.safe_pressure_threshold_percent / 100)
        return low, safe


@dataclass(frozen=True)
class ScalingDecision:
    """Target ZRAM capacity for one controller cycle."""
    target_ratio: int
    target_total_bytes: int
    reason: DecisionReason
    device_count: int = 1

    @property
    def per_device_bytes(self) -> int:
        # Whole MiB per device, remainder dropped, never below 1 MiB.
        per_device_mib = (self.target_total_bytes // MIB) // self.device_count
        return max(per_device_mib, 1) * MIB

    def device_specs(self, compression_algorithm: str, priority: int) -> List[ZramDeviceSpec]:
        """Expand the decision into one desired spec per device index."""
        return [
            ZramDeviceSpec(
                index=index,
                capacity_bytes=self.per_device_bytes,
                compression_algorithm=compression_algorithm,
                priority=priority,
            )
            for index in range(self.device_count)
        ]


@dataclass
class StatusEvent:
    """Status record emitted once per initial setup and once per rescale tick."""
    phase: str
    state: ControllerState
    decision_reason: Optional[DecisionReason] = None
    target_ratio: Optional[int] = None
    target_bytes: Optional[int] = None
    applied_bytes: int = 0
    errors: List[str] = field(default_factory=list)
    error_kind: Optional[str] = None
    mutated: bool = False
    timestamp: str = field(
        default_factory=lambda: datetime.now(timezone.utc).isoformat()
    )

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data['state'] = self.state.value
        data['decision_reason'] = self.decision_reason.value if self.decision_reason else None
        return data


SUPPORTED_ALGORITHMS = ('lzo', 'lzo-rle', 'lz4', 'lz4hc', 'zstd', '842', 'deflate')


@dataclass(frozen=True)
class DeviceSettings:
    """How each device is configured, independent of its size."""
    device_count: int = 1
    compression_algorithm: str = 'lz4'
    priority: int = 100
    swappiness: Optional[int] = 100

    def __post_init__(self):
        if self.device_count < 1:
            raise ConfigError(f"device_count must be >= 1, got {self.device_count}")
        if self.compression_algorithm not in SUPPORTED_ALGORITHMS:
            raise ConfigError(
                f"unsupported compression algorithm '{self.compression_algorithm}', "
                f"expected one of {', '.join(SUPPORTED_ALGORITHMS)}"
            )
        # swapon ignores a negative priority and the kernel assigns its own.
        if not 0 <= self.priority <= 32767:
            raise ConfigError(f"swap priority must be in [0, 32767], got {self.priority}")
        if self.swappiness is not None and not 0 <= self.swappiness <= 200:
            raise ConfigError(f"swappiness must be in [0, 200], got {self.swappiness}")
