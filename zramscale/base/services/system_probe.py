"""Read-only queries of memory counters and live ZRAM device state."""

import logging
from typing import Dict, List, Optional, Tuple

from zramscale.abstractions.interfaces.system_ops import ISystemOps
from zramscale.abstractions.types.zram_types import MemorySnapshot, ZramDeviceSpec
from zramscale.base.services.host_health import HostInfo
from zramscale.core.errors import CommandError, ProbeError

logger = logging.getLogger(__name__)

# Errors a read may surface besides "device absent".
_READ_ERRORS = (OSError, ValueError, KeyError, RuntimeError)


class SystemProbe:
    """Stateless reader over the system operations seam."""

    def __init__(self, ops: ISystemOps):
        self._ops = ops

    def read_memory(self) -> MemorySnapshot:
        """Capture total and available memory in one read."""
        try:
            total, available = self._ops.read_memory()
        except _READ_ERRORS as e:
            raise ProbeError(f"memory counters unreadable: {e}") from e

        if total is None or available is None:
            raise ProbeError("memory counters missing MemTotal or MemAvailable")
        if total <= 0:
            raise ProbeError(f"implausible total memory: {total}")
        if available > total:
            raise ProbeError(f"available memory ({available}) exceeds total ({total})")

        return MemorySnapshot(total_bytes=int(total), available_bytes=int(available))

    def read_zram_capacity(self, index: int) -> Optional[int]:
        """Live disksize of zram<index>, None when the device does not exist."""
        try:
            return self._ops.read_device_capacity(index)
        except FileNotFoundError:
            return None
        except _READ_ERRORS as e:
            raise ProbeError(f"cannot read disksize of zram{index}: {e}") from e

    def device_count(self) -> int:
        try:
            return self._ops.device_count()
        except _READ_ERRORS as e:
            raise ProbeError(f"cannot count zram devices: {e}") from e

    def read_device_stats(self, index: int) -> Dict[str, int]:
        """mm_stat counters of zram<index>, empty when the kernel does not expose them."""
        try:
            return self._ops.read_device_stats(index)
        except FileNotFoundError:
            return {}
        except _READ_ERRORS as e:
            raise ProbeError(f"cannot read mm_stat of zram{index}: {e}") from e

    def read_device_specs(self) -> List[ZramDeviceSpec]:
        """Live spec of every present zram device, ordered by index."""
        active = self._active_zram_swaps()
        specs = []
        for index in range(self.device_count()):
            capacity = self.read_zram_capacity(index)
            if capacity is None:
                continue
            try:
                algorithm = self._ops.read_compression_algorithm(index) or ""
            except _READ_ERRORS as e:
                raise ProbeError(f"cannot read comp_algorithm of zram{index}: {e}") from e
            specs.append(ZramDeviceSpec(
                index=index,
                capacity_bytes=capacity,
                compression_algorithm=algorithm,
                priority=active.get(index, 0),
                active=index in active,
            ))
        return specs

    def _active_zram_swaps(self) -> dict:
        try:
            swaps = self._ops.active_swaps()
        except _READ_ERRORS as e:
            raise ProbeError(f"cannot read active swaps: {e}") from e

        by_index = {}
        for path, priority in swaps.items():
            index = zram_index(path)
            if index is not None:
                by_index[index] = priority
        return by_index

    # --- host facts, never fatal ---

    def read_host_info(self) -> HostInfo:
        facts = self._optional(self._ops.read_host_info, "host info") or {}
        return HostInfo(
            model=facts.get('model'),
            cpu_model=facts.get('cpu_model'),
            cpu_cores=facts.get('cpu_cores'),
            kernel=facts.get('kernel'),
        )

    def read_load_average(self) -> Optional[Tuple[float, float, float]]:
        return self._optional(self._ops.read_load_average, "load average")

    def read_cpu_temperature(self) -> Optional[float]:
        return self._optional(self._ops.read_cpu_temperature, "CPU temperature")

    @staticmethod
    def _optional(read, what: str):
        try:
            return read()
        except _READ_ERRORS + (CommandError,) as e:
            logger.debug(f"{what} unavailable: {e}")
            return None


def zram_index(device_path: str) -> Optional[int]:
    """Parse the device index out of '/dev/zramN', None for other swaps."""
    name = device_path.rsplit('/', 1)[-1]
    if not name.startswith('zram'):
        return None
    suffix = name[len('zram'):]
    return int(suffix) if suffix.isdigit() else None
