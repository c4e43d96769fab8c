# zramscale/config/defaults.py
"""Default configuration values"""

from pathlib import Path

# Locations searched for a config file, first match wins
CONFIG_SEARCH_PATHS = [
    Path('/etc/zramscale/config.yml'),
    Path.cwd() / 'config.yml',
    Path.home() / '.config' / 'zramscale' / 'config.yml',
]

# Device layout
ZRAM = {
    'devices': 1,
    'priority': 100,  # Above any disk swap
    'compression_algorithm': 'lz4',
}

# Share of total RAM per memory tier, in percent
SIZING = {
    'ratio_small': 60,   # <= 1 GiB RAM
    'ratio_medium': 50,  # <= 2 GiB RAM
    'ratio_large': 50,
    'minimum_size_mb': 32,
}

# Pressure-driven rescaling
SCALING = {
    'enabled': False,
    # MiB of available memory, or a percentage of total RAM such as "10%"
    'memory_low_threshold': 200,
    'memory_safe_threshold': 400,
    'check_interval': 15,  # seconds
}

# Host tuning
SYSTEM = {
    'swappiness': 100,  # null leaves vm.swappiness untouched
}

PATHS = {
    'lock_file': '/run/zramscale.lock',
    'sysfs_root': '/sys',
    'proc_root': '/proc',
    'dev_root': '/dev',
}

LOGGING = {
    'level': 'INFO',
    'file': '/var/log/zramscale.log',
    'max_file_size': 10 * 1024 * 1024,  # 10MB
    'backup_count': 3,
}

BENCHMARK = {
    'size_mb': 100,
    'patterns': ['random', 'zeros', 'repeating', 'mixed'],
    'compression_algorithm': None,  # None uses zram.compression_algorithm
}

# Environment variables accepted as overrides, mapped to dot-notation keys
ENV_OVERRIDES = {
    'ZRAM_DEVICES': 'zram.devices',
    'ZRAM_PRIORITY': 'zram.priority',
    'ZRAM_COMP_ALGO': 'zram.compression_algorithm',
    'ZRAM_RATIO_SMALL': 'sizing.ratio_small',
    'ZRAM_RATIO_MEDIUM': 'sizing.ratio_medium',
    'ZRAM_RATIO_LARGE': 'sizing.ratio_large',
    'VM_SWAPPINESS': 'system.swappiness',
    'ENABLE_DYNAMIC_SCALING': 'scaling.enabled',
    'MEMORY_LOW_THRESHOLD': 'scaling.memory_low_threshold',
    'MEMORY_SAFE_THRESHOLD': 'scaling.memory_safe_threshold',
    'SCALING_CHECK_INTERVAL': 'scaling.check_interval',
}
