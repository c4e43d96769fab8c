"""Linux implementation of the system operations seam (sysfs, procfs, swap tools)."""

import os
import platform
import re
import subprocess
import time
import logging
from pathlib import Path
from typing import Any, Dict, List, Optional, Tuple

import psutil

from zramscale.abstractions.interfaces.system_ops import ISystemOps
from zramscale.core.errors import CommandError

logger = logging.getLogger(__name__)

# Field order of /sys/block/zramN/mm_stat; older kernels print fewer columns.
MM_STAT_FIELDS = (
    'orig_data_size',
    'compr_data_size',
    'mem_used_total',
    'mem_limit',
    'mem_used_max',
    'same_pages',
    'pages_compacted',
    'huge_pages',
    'huge_pages_since',
)

_SELECTED_ALGORITHM = re.compile(r'\[([^\]]+)\]')
_ZRAM_NAME = re.compile(r'^zram(\d+)$')
_VCGENCMD_TEMP = re.compile(r"temp=(-?\d+(?:\.\d+)?)")


def parse_comp_algorithm(content: str) -> Optional[str]:
    """Selected algorithm from 'lzo lzo-rle [lz4] zstd', or the sole entry."""
    match = _SELECTED_ALGORITHM.search(content)
    if match:
        return match.group(1)
    parts = content.split()
    return parts[0] if len(parts) == 1 else None


def parse_proc_swaps(content: str) -> Dict[str, int]:
    """Map device path to priority from the text of /proc/swaps."""
    swaps = {}
    for line in content.splitlines()[1:]:
        fields = line.split()
        if len(fields) < 5:
            continue
        try:
            swaps[fields[0]] = int(fields[4])
        except ValueError:
            logger.debug(f"Ignoring malformed /proc/swaps line: {line!r}")
    return swaps


def parse_mm_stat(content: str) -> Dict[str, int]:
    values = [int(v) for v in content.split()]
    return dict(zip(MM_STAT_FIELDS, values))


def parse_cpu_model(content: str) -> Optional[str]:
    """First 'model name' entry of /proc/cpuinfo."""
    for line in content.splitlines():
        key, sep, value = line.partition(':')
        if sep and key.strip().lower() == 'model name':
            return value.strip() or None
    return None


def parse_vcgencmd_temp(output: str) -> Optional[float]:
    """Degrees from vcgencmd output such as "temp=48.3'C"."""
    match = _VCGENCMD_TEMP.search(output)
    return float(match.group(1)) if match else None


class LinuxSystemOps(ISystemOps):
    """Reads and writes kernel attributes directly and shells out for swap tools.

    Roots are configurable so the implementation can run against a fake
    sysfs/procfs tree.
    """

    def __init__(self,
                 sysfs_root: str = '/sys',
                 proc_root: str = '/proc',
                 dev_root: str = '/dev',
                 settle_attempts: int = 10,
                 settle_delay: float = 0.05):
        self.sysfs_root = Path(sysfs_root)
        self.proc_root = Path(proc_root)
        self.dev_root = Path(dev_root)
        self._settle_attempts = settle_attempts
        self._settle_delay = settle_delay

    # --- paths ---

    def _block_dir(self, index: int) -> Path:
        return self.sysfs_root / 'block' / f'zram{index}'

    def _device_path(self, index: int) -> str:
        return str(self.dev_root / f'zram{index}')

    @property
    def _control_dir(self) -> Path:
        return self.sysfs_root / 'class' / 'zram-control'

    def _write_attr(self, index: int, name: str, value) -> None:
        path = self._block_dir(index) / name
        logger.debug(f"{path} <- {value}")
        path.write_text(f"{value}\n")

    # --- reads ---

    def read_memory(self) -> Tuple[int, int]:
        mem = psutil.virtual_memory()
        return mem.total, mem.available

    def device_count(self) -> int:
        block = self.sysfs_root / 'block'
        if not block.is_dir():
            return 0
        indices = [
            int(m.group(1)) for m in (_ZRAM_NAME.match(p.name) for p in block.iterdir()) if m
        ]
        # Devices are addressed as zram0..zramN-1, count the contiguous run.
        count = 0
        while count in indices:
            count += 1
        return count

    def read_device_capacity(self, index: int) -> Optional[int]:
        block_dir = self._block_dir(index)
        if not block_dir.is_dir():
            return None
        return int((block_dir / 'disksize').read_text().strip())

    def read_compression_algorithm(self, index: int) -> Optional[str]:
        path = self._block_dir(index) / 'comp_algorithm'
        if not path.exists():
            return None
        return parse_comp_algorithm(path.read_text())

    def active_swaps(self) -> Dict[str, int]:
        return parse_proc_swaps((self.proc_root / 'swaps').read_text())

    def read_device_stats(self, index: int) -> Dict[str, int]:
        return parse_mm_stat((self._block_dir(index) / 'mm_stat').read_text())

    # --- device mutation ---

    def set_compression_algorithm(self, index: int, algorithm: str) -> None:
        self._write_attr(index, 'comp_algorithm', algorithm)

    def set_capacity(self, index: int, capacity_bytes: int) -> None:
        self._write_attr(index, 'disksize', capacity_bytes)

    def reset_device(self, index: int) -> None:
        self._write_attr(index, 'reset', 1)

    def format_swap(self, index: int) -> None:
        self._run(['mkswap', '-U', 'clear', self._device_path(index)])

    def enable_swap(self, index: int, priority: int) -> None:
        self._run(['swapon', '--discard', '--priority', str(priority), self._device_path(index)])

    def disable_swap(self, device_path: str) -> None:
        self._run(['swapoff', device_path])

    # --- module and host ---

    def load_module(self, device_count: int) -> None:
        self._run(['modprobe', 'zram', f'num_devices={device_count}'])
        for index in range(device_count):
            self._wait_for_device(index)

    def unload_module(self) -> None:
        self._run(['modprobe', '-r', 'zram'])

    def set_swappiness(self, value: int) -> None:
        (self.proc_root / 'sys' / 'vm' / 'swappiness').write_text(f"{value}\n")

    # --- scratch devices ---

    def hot_add_device(self) -> int:
        index = int((self._control_dir / 'hot_add').read_text().strip())
        logger.debug(f"Created zram device zram{index}")
        self._wait_for_device(index)
        return index

    def hot_remove_device(self, index: int) -> None:
        logger.debug(f"Removing zram device zram{index}")
        (self._control_dir / 'hot_remove').write_text(f"{index}\n")

    def write_device(self, index: int, data: bytes) -> None:
        with open(self._device_path(index), 'r+b', buffering=0) as fd:
            fd.write(data)
            os.fsync(fd.fileno())

    def is_privileged(self) -> bool:
        return os.geteuid() == 0

    # --- host facts ---

    def read_host_info(self) -> Dict[str, Any]:
        info = {
            'cpu_cores': psutil.cpu_count(),
            'kernel': platform.release() or None,
        }
        model = self.proc_root / 'device-tree' / 'model'
        if model.exists():
            # Device tree strings are NUL terminated.
            raw = model.read_bytes().replace(b'\0', b'')
            info['model'] = raw.decode(errors='replace').strip() or None
        cpuinfo = self.proc_root / 'cpuinfo'
        if cpuinfo.exists():
            info['cpu_model'] = parse_cpu_model(cpuinfo.read_text())
        return info

    def read_load_average(self) -> Optional[Tuple[float, float, float]]:
        return tuple(psutil.getloadavg())

    def read_cpu_temperature(self) -> Optional[float]:
        """vcgencmd on Raspberry Pi firmware, else the first thermal zone."""
        try:
            temperature = parse_vcgencmd_temp(self._run(['vcgencmd', 'measure_temp']))
        except CommandError as e:
            logger.debug(f"vcgencmd unavailable: {e}")
            temperature = None
        if temperature is not None:
            return temperature

        zone = self.sysfs_root / 'class' / 'thermal' / 'thermal_zone0' / 'temp'
        if not zone.exists():
            return None
        return int(zone.read_text().strip()) / 1000

    # --- helpers ---

    def _wait_for_device(self, index: int) -> None:
        """Block until /sys/block/zram<index> appears after udev settles."""
        block_dir = self._block_dir(index)
        for _ in range(self._settle_attempts):
            if block_dir.is_dir():
                return
            time.sleep(self._settle_delay)
        if not block_dir.is_dir():
            raise TimeoutError(f"{block_dir} did not appear after loading the zram module")

    def _run(self, command: List[str]) -> str:
        logger.debug(f"Running: {' '.join(command)}")
        try:
            completed = subprocess.run(command, capture_output=True, text=True, check=False)
        except FileNotFoundError as e:
            raise CommandError(command, 127, str(e)) from e
        if completed.returncode != 0:
            raise CommandError(command, completed.returncode, completed.stderr)
        return completed.stdout
