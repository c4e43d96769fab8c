"""Point-in-time report of memory, live ZRAM devices and the current sizing decision."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from zramscale.abstractions.types.zram_types import (
    MIB, MemorySnapshot, ScalingDecision, SizingPolicy, ZramDeviceSpec
)
from zramscale.base.services.host_health import HealthAssessment, HostInfo, assess_health
from zramscale.base.services.sizing_policy import select_effective_ratio
from zramscale.base.services.system_probe import SystemProbe


def compression_ratio(stats: Dict[str, int]) -> Optional[float]:
    """orig_data_size / compr_data_size, None until something is compressed."""
    original = stats.get('orig_data_size', 0)
    compressed = stats.get('compr_data_size', 0)
    if original <= 0 or compressed <= 0:
        return None
    return round(original / compressed, 2)


@dataclass
class DeviceStatus:
    spec: ZramDeviceSpec
    stats: Dict[str, int] = field(default_factory=dict)

    @property
    def compression_ratio(self) -> Optional[float]:
        return compression_ratio(self.stats)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'device': self.spec.device_path,
            'capacity_bytes': self.spec.capacity_bytes,
            'compression_algorithm': self.spec.compression_algorithm,
            'priority': self.spec.priority,
            'active': self.spec.active,
            'stats': dict(self.stats),
            'compression_ratio': self.compression_ratio,
        }


@dataclass
class StatusReport:
    memory: MemorySnapshot
    devices: List[DeviceStatus]
    decision: ScalingDecision
    host: Optional[HostInfo] = None
    health: Optional[HealthAssessment] = None

    @property
    def zram_total_bytes(self) -> int:
        return sum(d.spec.capacity_bytes for d in self.devices)

    @property
    def zram_share_percent(self) -> float:
        return round(self.zram_total_bytes / self.memory.total_bytes * 100, 1)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'memory': {
                'total_bytes': self.memory.total_bytes,
                'available_bytes': self.memory.available_bytes,
                'percent_used': round(self.memory.percent_used, 1),
            },
            'zram_total_bytes': self.zram_total_bytes,
            'zram_share_percent': self.zram_share_percent,
            'devices': [d.to_dict() for d in self.devices],
            'decision': {
                'reason': self.decision.reason.value,
                'target_ratio': self.decision.target_ratio,
                'target_total_bytes': self.decision.target_total_bytes,
                'device_count': self.decision.device_count,
            },
            'host': self.host.to_dict() if self.host else None,
            'health': self.health.to_dict() if self.health else None,
        }

    def format_lines(self) -> List[str]:
        mem = self.memory
        lines = [
            f"Memory: {mem.total_bytes // MIB}MiB total, "
            f"{mem.available_bytes // MIB}MiB available ({mem.percent_used:.1f}% used)",
            f"ZRAM: {self.zram_total_bytes // MIB}MiB across {len(self.devices)} device(s) "
            f"({self.zram_share_percent}% of RAM)",
        ]
        for device in self.devices:
            spec = device.spec
            state = f"swap prio {spec.priority}" if spec.active else "not in use"
            ratio = device.compression_ratio
            lines.append(
                f"  {spec.device_path}: {spec.capacity_bytes // MIB}MiB "
                f"{spec.compression_algorithm or '?'}, {state}, "
                f"ratio {f'{ratio:.2f}x' if ratio else 'n/a'}"
            )
        lines.extend(self._host_lines())
        lines.append(
            f"Policy now: {self.decision.target_ratio}% -> "
            f"{self.decision.target_total_bytes // MIB}MiB ({self.decision.reason.value})"
        )
        return lines

    def _host_lines(self) -> List[str]:
        lines = []
        if self.host:
            lines.append(f"Host: {self.host.describe()}")
        health = self.health
        if health is None:
            return lines
        if health.load_average:
            lines.append("Load average: " + " ".join(f"{v:.2f}" for v in health.load_average))
        if health.temperature_celsius is not None:
            lines.append(f"CPU temperature: {health.temperature_celsius:.1f}C ({health.temperature_band})")
        lines.append(f"Health: {health.grade} ({health.score}/100)")
        for warning in health.warnings:
            lines.append(f"  warning: {warning}")
        return lines


def collect_status(probe: SystemProbe, policy: SizingPolicy, device_count: int = 1) -> StatusReport:
    """Read memory and every live device once, evaluate the policy against them and grade the host."""
    memory = probe.read_memory()
    devices = [
        DeviceStatus(spec=spec, stats=probe.read_device_stats(spec.index))
        for spec in probe.read_device_specs()
    ]
    decision = select_effective_ratio(
        memory.total_bytes, memory.available_bytes, policy, device_count=device_count
    )
    report = StatusReport(memory=memory, devices=devices, decision=decision,
                          host=probe.read_host_info())
    report.health = assess_health(
        memory,
        report.zram_total_bytes,
        temperature_celsius=probe.read_cpu_temperature(),
        load_average=probe.read_load_average(),
    )
    return report
