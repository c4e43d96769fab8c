# zramscale/abstractions/interfaces/system_ops.py
"""Operating system capability interface - NO IMPLEMENTATIONS!

Every read of memory counters and every mutation of ZRAM or swap state goes
through this seam. Implementations raise ``OSError`` (or a subclass) for
filesystem failures and ``CommandError`` for failed external commands.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple


class ISystemOps(ABC):
    """Capabilities needed to observe and reconfigure ZRAM swap."""

    # --- reads ---

    @abstractmethod
    def read_memory(self) -> Tuple[int, int]:
        """Return (total_bytes, available_bytes)."""
        pass

    @abstractmethod
    def device_count(self) -> int:
        """Number of zram block devices currently present."""
        pass

    @abstractmethod
    def read_device_capacity(self, index: int) -> Optional[int]:
        """Configured disksize of zram<index>, or None if the device is absent."""
        pass

    @abstractmethod
    def read_compression_algorithm(self, index: int) -> Optional[str]:
        """Selected compression algorithm of zram<index>, or None if absent."""
        pass

    @abstractmethod
    def active_swaps(self) -> Dict[str, int]:
        """Map of active swap device path to its priority."""
        pass

    @abstractmethod
    def read_device_stats(self, index: int) -> Dict[str, int]:
        """Memory statistics (mm_stat) of zram<index>."""
        pass

    # --- device mutation ---

    @abstractmethod
    def set_compression_algorithm(self, index: int, algorithm: str) -> None:
        pass

    @abstractmethod
    def set_capacity(self, index: int, capacity_bytes: int) -> None:
        pass

    @abstractmethod
    def reset_device(self, index: int) -> None:
        """Release all memory of zram<index> so its size can change."""
        pass

    @abstractmethod
    def format_swap(self, index: int) -> None:
        """Write a fresh swap signature to /dev/zram<index>."""
        pass

    @abstractmethod
    def enable_swap(self, index: int, priority: int) -> None:
        pass

    @abstractmethod
    def disable_swap(self, device_path: str) -> None:
        pass

    # --- module and host ---

    @abstractmethod
    def load_module(self, device_count: int) -> None:
        """Load the zram module with ``device_count`` devices and wait for them."""
        pass

    @abstractmethod
    def unload_module(self) -> None:
        pass

    @abstractmethod
    def set_swappiness(self, value: int) -> None:
        pass

    # --- scratch devices (benchmarking) ---

    @abstractmethod
    def hot_add_device(self) -> int:
        """Create an extra zram device and return its index."""
        pass

    @abstractmethod
    def hot_remove_device(self, index: int) -> None:
        pass

    @abstractmethod
    def write_device(self, index: int, data: bytes) -> None:
        """Write ``data`` to the start of /dev/zram<index> and flush it."""
        pass

    def is_privileged(self) -> bool:
        """Whether the process may mutate swap and device state."""
        return True

    # --- optional host facts, for reporting only ---

    def read_host_info(self) -> Dict[str, Any]:
        """Static facts keyed model, cpu_model, cpu_cores and kernel. Unknown keys may be absent."""
        return {}

    def read_load_average(self) -> Optional[Tuple[float, float, float]]:
        return None

    def read_cpu_temperature(self) -> Optional[float]:
        """SoC temperature in degrees Celsius, None when no sensor is readable."""
        return None
