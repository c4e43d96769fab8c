"""ZRAM services - one focused service per concern.

- SystemProbe: memory counters and live device state
- sizing_policy: tier ratio, pressure adjustment and target size
- DeviceApplier: per-device reconfiguration with failure aggregation
- StatusReporter: status events into the structured log
- collect_status / ZramBenchmark: reporting and measurement
- assess_health: host health score for the status report
"""

from .host_health import HostInfo, HealthAssessment, assess_health
from .system_probe import SystemProbe, zram_index
from .sizing_policy import (
    select_base_ratio,
    compute_target_bytes,
    select_effective_ratio
)
from .device_applier import DeviceApplier, ApplyResult
from .status_reporter import StatusReporter
from .status_report import StatusReport, DeviceStatus, collect_status
from .benchmark import ZramBenchmark, BenchmarkResult, PATTERNS

__all__ = [
    'SystemProbe',
    'zram_index',
    'select_base_ratio',
    'compute_target_bytes',
    'select_effective_ratio',
    'DeviceApplier',
    'ApplyResult',
    'StatusReporter',
    'StatusReport',
    'DeviceStatus',
    'collect_status',
    'ZramBenchmark',
    'BenchmarkResult',
    'PATTERNS',
    'HostInfo',
    'HealthAssessment',
    'assess_health'
]
