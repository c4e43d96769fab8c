"""Converge live ZRAM devices to a scaling decision."""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional

from zramscale.abstractions.interfaces.system_ops import ISystemOps
from zramscale.abstractions.types.zram_types import (
    MIB, DeviceSettings, ScalingDecision, ZramDeviceSpec
)
from zramscale.core.errors import ApplyError, CommandError, DeviceFailure

logger = logging.getLogger(__name__)

_STEP_ERRORS = (OSError, CommandError, ValueError)


@dataclass
class ApplyResult:
    """Outcome of one apply: the devices now active and every failed step."""
    applied: List[ZramDeviceSpec] = field(default_factory=list)
    failures: List[DeviceFailure] = field(default_factory=list)
    mutated: bool = True

    @property
    def active_devices(self) -> int:
        return len(self.applied)

    @property
    def applied_bytes(self) -> int:
        return sum(spec.capacity_bytes for spec in self.applied)

    @property
    def ok(self) -> bool:
        return not self.failures

    @property
    def error(self) -> Optional[ApplyError]:
        if not self.failures:
            return None
        return ApplyError(self.failures, active_devices=self.active_devices)


class DeviceApplier:
    """Sequence OS primitives so live devices match a decision.

    Best effort per device: a failing step abandons the remaining steps of that
    device only, and every failure is reported in the result.
    """

    def __init__(self, ops: ISystemOps, settings: DeviceSettings):
        self._ops = ops
        self.settings = settings

    def desired_specs(self, decision: ScalingDecision) -> List[ZramDeviceSpec]:
        return decision.device_specs(self.settings.compression_algorithm, self.settings.priority)

    def is_converged(self, decision: ScalingDecision, current_specs: List[ZramDeviceSpec]) -> bool:
        """True when live devices already match the decision exactly."""
        desired = self.desired_specs(decision)
        if len(desired) != len(current_specs):
            return False
        current_by_index = {spec.index: spec for spec in current_specs}
        return all(
            spec.index in current_by_index and spec.matches(current_by_index[spec.index])
            for spec in desired
        )

    def apply_decision(self, decision: ScalingDecision,
                       current_specs: List[ZramDeviceSpec]) -> ApplyResult:
        """Reconfigure devices to match ``decision``.

        Args:
            decision: Target sizing
            current_specs: Live device state read just before this call

        Returns:
            ApplyResult; ``mutated`` is False when nothing needed to change
        """
        if self.is_converged(decision, current_specs):
            logger.debug("Devices already match decision, nothing to apply")
            return ApplyResult(applied=list(current_specs), mutated=False)

        desired = self.desired_specs(decision)
        failures: List[DeviceFailure] = []
        blocked = set()

        # Capacity of a swapped-on device cannot change.
        for spec in current_specs:
            if not spec.active:
                continue
            try:
                self._ops.disable_swap(spec.device_path)
                logger.debug(f"Disabled swap on {spec.device_path}")
            except _STEP_ERRORS as e:
                failures.append(DeviceFailure(spec.index, 'disable_swap', str(e)))
                blocked.add(spec.index)

        live_capacity: Dict[int, int] = {s.index: s.capacity_bytes for s in current_specs}
        reloaded = False

        if len(current_specs) != decision.device_count:
            logger.info(
                f"Reloading zram module: {len(current_specs)} -> {decision.device_count} device(s)"
            )
            module_failure = self._reload_module(decision.device_count, loaded=bool(current_specs))
            if module_failure is not None:
                failures.append(module_failure)
                restored = []
                if module_failure.step == 'unload_module':
                    # Old devices are intact, only their swap is off.
                    restored = self._restore_swap(current_specs, blocked, failures)
                return ApplyResult(applied=restored, failures=failures)
            reloaded = True
            live_capacity = {}

        applied = []
        for spec in desired:
            if spec.index in blocked:
                continue
            needs_reset = not reloaded and live_capacity.get(spec.index, 0) > 0
            failure = self._configure_device(spec, needs_reset)
            if failure is None:
                applied.append(spec)
                logger.info(
                    f"Configured {spec.device_path}: disksize={spec.capacity_bytes // MIB}MiB "
                    f"algorithm={spec.compression_algorithm} priority={spec.priority}"
                )
            else:
                failures.append(failure)
                logger.warning(str(failure))

        return ApplyResult(applied=applied, failures=failures)

    def teardown(self, current_specs: List[ZramDeviceSpec]) -> List[DeviceFailure]:
        """Swap off every zram device and unload the module."""
        failures = []
        for spec in current_specs:
            if not spec.active:
                continue
            try:
                self._ops.disable_swap(spec.device_path)
                logger.info(f"Disabled swap on {spec.device_path}")
            except _STEP_ERRORS as e:
                failures.append(DeviceFailure(spec.index, 'disable_swap', str(e)))

        if current_specs:
            try:
                self._ops.unload_module()
                logger.info("Unloaded zram module")
            except _STEP_ERRORS as e:
                failures.append(DeviceFailure(None, 'unload_module', str(e)))
        return failures

    def tune_swappiness(self) -> Optional[DeviceFailure]:
        """Apply the configured vm.swappiness, if any."""
        value = self.settings.swappiness
        if value is None:
            return None
        try:
            self._ops.set_swappiness(value)
        except _STEP_ERRORS as e:
            return DeviceFailure(None, 'set_swappiness', str(e))
        logger.info(f"Set vm.swappiness={value} (runtime)")
        return None

    def _reload_module(self, device_count: int, loaded: bool) -> Optional[DeviceFailure]:
        if loaded:
            try:
                self._ops.unload_module()
            except _STEP_ERRORS as e:
                return DeviceFailure(None, 'unload_module', str(e))
        try:
            self._ops.load_module(device_count)
        except _STEP_ERRORS as e:
            return DeviceFailure(None, 'load_module', str(e))
        return None

    def _restore_swap(self, specs: List[ZramDeviceSpec], skip: set,
                      failures: List[DeviceFailure]) -> List[ZramDeviceSpec]:
        """Swap devices back on at their previous size after the module refused to unload."""
        restored = []
        for spec in specs:
            if not spec.active or spec.index in skip:
                continue
            try:
                self._ops.enable_swap(spec.index, spec.priority)
            except _STEP_ERRORS as e:
                failures.append(DeviceFailure(spec.index, 'enable_swap', str(e)))
                continue
            logger.warning(f"Re-enabled swap on {spec.device_path} unchanged")
            restored.append(spec)
        return restored

    def _configure_device(self, spec: ZramDeviceSpec, needs_reset: bool) -> Optional[DeviceFailure]:
        step = None
        try:
            if needs_reset:
                step = 'reset'
                self._ops.reset_device(spec.index)
            # comp_algorithm only accepts writes before disksize is set.
            step = 'set_compression_algorithm'
            self._ops.set_compression_algorithm(spec.index, spec.compression_algorithm)
            step = 'set_capacity'
            self._ops.set_capacity(spec.index, spec.capacity_bytes)
            step = 'format_swap'
            self._ops.format_swap(spec.index)
            step = 'enable_swap'
            self._ops.enable_swap(spec.index, spec.priority)
        except _STEP_ERRORS as e:
            return DeviceFailure(spec.index, step, str(e))
        return None
