"""Interfaces - pure abstractions with no implementations."""

from .system_ops import ISystemOps

__all__ = ['ISystemOps']
