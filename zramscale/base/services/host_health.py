"""Host facts and a coarse health score shown alongside the ZRAM status."""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from zramscale.abstractions.types.zram_types import MemorySnapshot

# (threshold, penalty) pairs; a reading strictly above the threshold costs the penalty.
MEMORY_USAGE_LIMIT = (90, 20)
ZRAM_SHARE_LIMIT = (80, 10)
TEMPERATURE_LIMIT = (75, 15)

WARM_CELSIUS = 70
HOT_CELSIUS = 80


@dataclass
class HostInfo:
    model: Optional[str] = None
    cpu_model: Optional[str] = None
    cpu_cores: Optional[int] = None
    kernel: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model': self.model,
            'cpu_model': self.cpu_model,
            'cpu_cores': self.cpu_cores,
            'kernel': self.kernel,
        }

    def describe(self) -> str:
        cores = f"{self.cpu_cores} core(s)" if self.cpu_cores else "? core(s)"
        return (f"{self.model or 'unknown device'}, {self.cpu_model or 'unknown CPU'}, "
                f"{cores}, kernel {self.kernel or '?'}")


def temperature_band(celsius: Optional[float]) -> Optional[str]:
    """'normal' below 70C, 'warm' below 80C, 'hot' otherwise."""
    if celsius is None:
        return None
    degrees = int(celsius)
    if degrees < WARM_CELSIUS:
        return 'normal'
    if degrees < HOT_CELSIUS:
        return 'warm'
    return 'hot'


@dataclass
class HealthAssessment:
    score: int
    memory_percent_used: float
    zram_share_percent: float
    temperature_celsius: Optional[float] = None
    load_average: Optional[Tuple[float, float, float]] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def grade(self) -> str:
        if self.score > 80:
            return 'EXCELLENT'
        if self.score > 60:
            return 'GOOD'
        return 'POOR'

    @property
    def temperature_band(self) -> Optional[str]:
        return temperature_band(self.temperature_celsius)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'score': self.score,
            'grade': self.grade,
            'memory_percent_used': round(self.memory_percent_used, 1),
            'zram_share_percent': round(self.zram_share_percent, 1),
            'temperature_celsius': self.temperature_celsius,
            'temperature_band': self.temperature_band,
            'load_average': list(self.load_average) if self.load_average else None,
            'warnings': list(self.warnings),
        }


def assess_health(memory: MemorySnapshot,
                  zram_total_bytes: int,
                  temperature_celsius: Optional[float] = None,
                  load_average: Optional[Tuple[float, float, float]] = None) -> HealthAssessment:
    """Score the host out of 100 from memory use, ZRAM share of RAM and SoC temperature.

    Readings that are unavailable cost nothing. Percentages and degrees are
    compared as whole numbers.
    """
    memory_percent = memory.percent_used
    zram_percent = zram_total_bytes / memory.total_bytes * 100 if memory.total_bytes > 0 else 0.0

    score = 100
    warnings = []

    threshold, penalty = MEMORY_USAGE_LIMIT
    if int(memory_percent) > threshold:
        score -= penalty
        warnings.append(f"high memory usage ({memory_percent:.0f}%)")

    threshold, penalty = ZRAM_SHARE_LIMIT
    if int(zram_percent) > threshold:
        score -= penalty
        warnings.append(f"ZRAM sized at {zram_percent:.0f}% of RAM")

    threshold, penalty = TEMPERATURE_LIMIT
    if temperature_celsius is not None and int(temperature_celsius) > threshold:
        score -= penalty
        warnings.append(f"high CPU temperature ({temperature_celsius:.1f}C)")

    return HealthAssessment(
        score=score,
        memory_percent_used=memory_percent,
        zram_share_percent=zram_percent,
        temperature_celsius=temperature_celsius,
        load_average=load_average,
        warnings=warnings,
    )
