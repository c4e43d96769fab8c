"""Compression benchmark on a scratch ZRAM device."""

import os
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, List, Optional

from zramscale.abstractions.interfaces.system_ops import ISystemOps
from zramscale.abstractions.types.zram_types import MIB
from zramscale.base.services.status_report import compression_ratio
from zramscale.core.errors import BenchmarkError, CommandError
from zramscale.infrastructure.logging import get_logger

logger = get_logger(__name__)

REPEATING_LINE = b"ZRAMSCALE_COMPRESSION_BENCHMARK_DATA\n"


def _repeating(size: int) -> bytes:
    count = size // len(REPEATING_LINE) + 1
    return (REPEATING_LINE * count)[:size]


def _mixed(size: int) -> bytes:
    half = size // 2
    return os.urandom(half) + bytes(size - half)


PATTERNS: Dict[str, Callable[[int], bytes]] = {
    'random': os.urandom,
    'zeros': bytes,
    'repeating': _repeating,
    'mixed': _mixed,
}


@dataclass
class BenchmarkResult:
    pattern: str
    size_bytes: int
    duration_seconds: float
    orig_data_bytes: int
    compr_data_bytes: int
    mem_used_bytes: int

    @property
    def compression_ratio(self) -> Optional[float]:
        return compression_ratio({
            'orig_data_size': self.orig_data_bytes,
            'compr_data_size': self.compr_data_bytes,
        })

    @property
    def throughput_mb_per_second(self) -> Optional[float]:
        if self.duration_seconds <= 0:
            return None
        return round(self.size_bytes / MIB / self.duration_seconds, 2)

    def to_dict(self) -> dict:
        return {
            'pattern': self.pattern,
            'size_bytes': self.size_bytes,
            'duration_seconds': round(self.duration_seconds, 3),
            'orig_data_bytes': self.orig_data_bytes,
            'compr_data_bytes': self.compr_data_bytes,
            'mem_used_bytes': self.mem_used_bytes,
            'compression_ratio': self.compression_ratio,
            'throughput_mb_per_second': self.throughput_mb_per_second,
        }


class ZramBenchmark:
    """Measure how well each data pattern compresses with a given algorithm.

    Every pattern runs on its own hot-added device so counters start from zero
    and active swap devices are never touched. The scratch device is removed
    even when a step fails.
    """

    def __init__(self, ops: ISystemOps, size_bytes: int, compression_algorithm: str,
                 clock: Callable[[], float] = time.perf_counter):
        if size_bytes <= 0:
            raise ValueError(f"size_bytes must be positive, got {size_bytes}")
        self._ops = ops
        self.size_bytes = size_bytes
        self.compression_algorithm = compression_algorithm
        self._clock = clock

    def run(self, patterns: Iterable[str]) -> List[BenchmarkResult]:
        """Benchmark each pattern in turn.

        Raises:
            ValueError: unknown pattern name
            BenchmarkError: zram module not loaded, or a scratch device step failed
        """
        patterns = list(patterns)
        unknown = [p for p in patterns if p not in PATTERNS]
        if unknown:
            raise ValueError(f"Unknown benchmark pattern(s): {', '.join(unknown)}")

        # hot_add only exists while the module is loaded
        try:
            loaded = self._ops.device_count() > 0
        except OSError as e:
            raise BenchmarkError(f"cannot inspect zram devices: {e}") from e
        if not loaded:
            raise BenchmarkError("zram module not loaded, run 'zramscale start' first")

        results = []
        for pattern in patterns:
            try:
                results.append(self.run_pattern(pattern))
            except (OSError, CommandError) as e:
                raise BenchmarkError(f"pattern '{pattern}' failed: {e}") from e
        return results

    def run_pattern(self, pattern: str) -> BenchmarkResult:
        data = PATTERNS[pattern](self.size_bytes)
        index = self._ops.hot_add_device()
        try:
            self._ops.set_compression_algorithm(index, self.compression_algorithm)
            # Room for the data plus the page rounding of the final block.
            self._ops.set_capacity(index, self.size_bytes + MIB)
            before = self._ops.read_device_stats(index)

            start = self._clock()
            self._ops.write_device(index, data)
            duration = self._clock() - start

            after = self._ops.read_device_stats(index)
        finally:
            try:
                self._ops.hot_remove_device(index)
            except (OSError, ValueError) as e:
                logger.warning(f"Failed to remove scratch device zram{index}: {e}")

        result = BenchmarkResult(
            pattern=pattern,
            size_bytes=self.size_bytes,
            duration_seconds=duration,
            orig_data_bytes=_delta(before, after, 'orig_data_size'),
            compr_data_bytes=_delta(before, after, 'compr_data_size'),
            mem_used_bytes=_delta(before, after, 'mem_used_total'),
        )
        logger.log_performance(
            f"benchmark_{pattern}",
            duration,
            bytes_processed=self.size_bytes,
            algorithm=self.compression_algorithm,
            compression_ratio=result.compression_ratio,
        )
        return result


def _delta(before: Dict[str, int], after: Dict[str, int], key: str) -> int:
    return after.get(key, 0) - before.get(key, 0)
