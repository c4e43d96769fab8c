"""Shared fixtures: an in-memory system and common policies."""

import errno
import logging
from typing import Dict, List, Optional, Tuple

import pytest
import yaml

from zramscale.abstractions.interfaces.system_ops import ISystemOps
from zramscale.abstractions.types import MIB, DeviceSettings, SizingPolicy
from zramscale.core.errors import CommandError


class InMemorySystemOps(ISystemOps):
    """Fake host with kernel-like rules for zram attributes and swap.

    - comp_algorithm and disksize only accept writes while disksize is 0
    - reset refuses while the device is swapped on
    - modprobe on a loaded module is a no-op, unloading refuses while in use
    """

    MUTATIONS = {
        'set_compression_algorithm', 'set_capacity', 'reset_device', 'format_swap',
        'enable_swap', 'disable_swap', 'load_module', 'unload_module', 'set_swappiness',
        'hot_add_device', 'hot_remove_device', 'write_device',
    }

    def __init__(self, total_bytes: int = 1024 * MIB, available_bytes: int = 600 * MIB):
        self.total_bytes = total_bytes
        self.available_bytes = available_bytes
        self.module_loaded = False
        self.devices: Dict[int, dict] = {}
        self.swaps: Dict[str, int] = {}
        self.swappiness = 60
        self.privileged = True
        self.memory_error: Optional[Exception] = None
        self.host_info: dict = {}
        self.load_average: Optional[Tuple[float, float, float]] = None
        self.temperature: Optional[float] = None
        self.calls: List[Tuple] = []
        self._failures: Dict[Tuple[str, Optional[int]], Exception] = {}

    # --- test helpers ---

    def fail_on(self, step: str, index: Optional[int] = None, error: Optional[Exception] = None):
        """Make ``step`` fail, for one device index or for every call when index is None."""
        self._failures[(step, index)] = error or OSError(errno.EIO, f"{step} failed")

    def clear_failures(self):
        self._failures.clear()

    def mutation_calls(self) -> List[Tuple]:
        return [c for c in self.calls if c[0] in self.MUTATIONS]

    def reset_calls(self):
        self.calls.clear()

    def _check(self, step: str, index: Optional[int] = None):
        self.calls.append((step, index))
        error = self._failures.get((step, index)) or self._failures.get((step, None))
        if error is not None:
            raise error

    def _device(self, index: int) -> dict:
        if index not in self.devices:
            raise FileNotFoundError(errno.ENOENT, f"/sys/block/zram{index} missing")
        return self.devices[index]

    @staticmethod
    def _new_device() -> dict:
        return {'capacity': 0, 'algorithm': 'lzo-rle', 'formatted': False,
                'stats': {'orig_data_size': 0, 'compr_data_size': 0, 'mem_used_total': 0}}

    # --- reads ---

    def read_memory(self):
        self.calls.append(('read_memory', None))
        if self.memory_error is not None:
            raise self.memory_error
        return self.total_bytes, self.available_bytes

    def device_count(self) -> int:
        return len(self.devices) if self.module_loaded else 0

    def read_device_capacity(self, index):
        if index not in self.devices:
            return None
        return self.devices[index]['capacity']

    def read_compression_algorithm(self, index):
        if index not in self.devices:
            return None
        return self.devices[index]['algorithm']

    def active_swaps(self):
        return dict(self.swaps)

    def read_device_stats(self, index):
        return dict(self._device(index)['stats'])

    # --- mutations ---

    def set_compression_algorithm(self, index, algorithm):
        self._check('set_compression_algorithm', index)
        device = self._device(index)
        if device['capacity']:
            raise OSError(errno.EBUSY, "Device or resource busy")
        device['algorithm'] = algorithm

    def set_capacity(self, index, capacity_bytes):
        self._check('set_capacity', index)
        device = self._device(index)
        if device['capacity']:
            raise OSError(errno.EBUSY, "Device or resource busy")
        device['capacity'] = capacity_bytes

    def reset_device(self, index):
        self._check('reset_device', index)
        device = self._device(index)
        if f"/dev/zram{index}" in self.swaps:
            raise OSError(errno.EBUSY, "Device or resource busy")
        device.update(self._new_device())

    def format_swap(self, index):
        self._check('format_swap', index)
        device = self._device(index)
        if not device['capacity']:
            raise CommandError(['mkswap', f'/dev/zram{index}'], 1, "swap area needs to be at least 40 KiB")
        device['formatted'] = True

    def enable_swap(self, index, priority):
        self._check('enable_swap', index)
        device = self._device(index)
        if not device['formatted']:
            raise CommandError(['swapon', f'/dev/zram{index}'], 255, "read swap header failed")
        self.swaps[f"/dev/zram{index}"] = priority

    def disable_swap(self, device_path):
        index = int(device_path.rsplit('zram', 1)[-1])
        self._check('disable_swap', index)
        if device_path not in self.swaps:
            raise CommandError(['swapoff', device_path], 255, "Invalid argument")
        del self.swaps[device_path]

    def load_module(self, device_count):
        self._check('load_module')
        if self.module_loaded:
            return
        self.module_loaded = True
        self.devices = {i: self._new_device() for i in range(device_count)}

    def unload_module(self):
        self._check('unload_module')
        if any(path.startswith('/dev/zram') for path in self.swaps):
            raise CommandError(['modprobe', '-r', 'zram'], 1, "Module zram is in use")
        self.module_loaded = False
        self.devices = {}

    def set_swappiness(self, value):
        self._check('set_swappiness')
        self.swappiness = value

    def hot_add_device(self):
        self._check('hot_add_device')
        if not self.module_loaded:
            raise FileNotFoundError(errno.ENOENT, "/sys/class/zram-control/hot_add missing")
        index = max(self.devices, default=-1) + 1
        self.devices[index] = self._new_device()
        return index

    def hot_remove_device(self, index):
        self._check('hot_remove_device', index)
        self._device(index)
        del self.devices[index]

    def write_device(self, index, data):
        self._check('write_device', index)
        stats = self._device(index)['stats']
        stats['orig_data_size'] += len(data)
        stats['compr_data_size'] += len(data) // 4
        stats['mem_used_total'] += len(data) // 4 + 4096

    def is_privileged(self):
        return self.privileged

    def read_host_info(self):
        return dict(self.host_info)

    def read_load_average(self):
        return self.load_average

    def read_cpu_temperature(self):
        return self.temperature


@pytest.fixture
def ops():
    """1 GiB host with 600 MiB available and no zram module loaded."""
    return InMemorySystemOps()


@pytest.fixture
def static_policy():
    return SizingPolicy()


@pytest.fixture
def dynamic_policy():
    return SizingPolicy(dynamic_scaling_enabled=True)


@pytest.fixture
def settings():
    return DeviceSettings(device_count=1, compression_algorithm='lz4', priority=100, swappiness=100)


@pytest.fixture
def config_file(tmp_path):
    """Write a config.yml into tmp_path; call with a dict of overrides."""
    def _write(data: dict = None, name: str = 'config.yml'):
        data = dict(data or {})
        data.setdefault('paths', {}).setdefault('lock_file', str(tmp_path / 'zramscale.lock'))
        data.setdefault('logging', {}).setdefault('file', str(tmp_path / 'zramscale.log'))
        path = tmp_path / name
        with open(path, 'w') as f:
            yaml.dump(data, f)
        return path
    return _write


@pytest.fixture
def restore_logging():
    """Put back root logger handlers replaced by setup_logging."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    for handler in root.handlers[:]:
        root.removeHandler(handler)
        handler.close()
    for handler in handlers:
        root.addHandler(handler)
    root.setLevel(level)


@pytest.fixture
def make_ops():
    """Factory for additional fake hosts."""
    return InMemorySystemOps
