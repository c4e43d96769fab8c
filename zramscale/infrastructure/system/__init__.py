"""Operating system bindings."""

from .linux_ops import LinuxSystemOps

__all__ = ['LinuxSystemOps']
