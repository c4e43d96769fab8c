# zramscale/core/controller.py
"""Rescaling controller: initial setup plus the fixed-interval rescale loop."""

import time
from dataclasses import dataclass, field
from typing import List, Optional

from zramscale.abstractions.types.zram_types import (
    ControllerState, ScalingDecision, SizingPolicy, StatusEvent, ZramDeviceSpec
)
from zramscale.base.services.device_applier import ApplyResult, DeviceApplier
from zramscale.base.services.sizing_policy import select_effective_ratio
from zramscale.base.services.status_reporter import StatusReporter
from zramscale.base.services.system_probe import SystemProbe
from zramscale.core.errors import ApplyError, DeviceFailure, ExitCode, ProbeError
from zramscale.core.signal_handler import SignalHandler
from zramscale.infrastructure.logging import get_logger, phase_context

logger = get_logger(__name__)

_TRANSITIONS = {
    ControllerState.UNINITIALIZED: {ControllerState.APPLYING_INITIAL, ControllerState.STOPPING},
    ControllerState.APPLYING_INITIAL: {
        ControllerState.STATIC_IDLE, ControllerState.MONITORING, ControllerState.STOPPING
    },
    ControllerState.STATIC_IDLE: {ControllerState.STOPPING},
    ControllerState.MONITORING: {ControllerState.APPLYING_RESCALE, ControllerState.STOPPING},
    ControllerState.APPLYING_RESCALE: {ControllerState.MONITORING, ControllerState.STOPPING},
    ControllerState.STOPPING: {ControllerState.STOPPED},
    ControllerState.STOPPED: set(),
}


@dataclass
class LoopState:
    """What the previous cycle decided and left applied."""
    decision: Optional[ScalingDecision] = None
    applied: List[ZramDeviceSpec] = field(default_factory=list)
    ticks: int = 0

    @property
    def ratio(self) -> Optional[int]:
        return self.decision.target_ratio if self.decision else None

    @property
    def applied_bytes(self) -> int:
        return sum(spec.capacity_bytes for spec in self.applied)


class RescalingController:
    """Drive ZRAM devices from an initial sizing through periodic rescaling.

    Initial setup failures are fatal and re-raised to the caller. Failures
    inside a rescale tick are logged, reported as a status event and retried
    on the next tick. Ticks run strictly one after another on the calling
    thread; a stop request is only observed between them.
    """

    def __init__(self,
                 probe: SystemProbe,
                 applier: DeviceApplier,
                 policy: SizingPolicy,
                 reporter: Optional[StatusReporter] = None,
                 shutdown: Optional[SignalHandler] = None,
                 check_interval: float = 15.0):
        if check_interval <= 0:
            raise ValueError(f"check_interval must be positive, got {check_interval}")
        self._probe = probe
        self._applier = applier
        self._policy = policy
        self._reporter = reporter or StatusReporter()
        self._shutdown = shutdown or SignalHandler()
        self._check_interval = check_interval
        self._state = ControllerState.UNINITIALIZED

    @property
    def state(self) -> ControllerState:
        return self._state

    @property
    def device_count(self) -> int:
        return self._applier.settings.device_count

    def _transition(self, new_state: ControllerState) -> None:
        if new_state not in _TRANSITIONS[self._state]:
            raise RuntimeError(
                f"Invalid controller transition {self._state.value} -> {new_state.value}"
            )
        logger.debug(f"Controller state {self._state.value} -> {new_state.value}")
        self._state = new_state

    def start(self) -> LoopState:
        """Probe once, apply the initial decision and settle into idle or monitoring.

        Raises:
            ProbeError: memory or device state could not be read; nothing was changed
            ApplyError: no device ended up active
        """
        self._transition(ControllerState.APPLYING_INITIAL)
        token = phase_context.set('initial_setup')
        try:
            try:
                snapshot = self._probe.read_memory()
                current = self._probe.read_device_specs()
            except ProbeError as e:
                self._fail('initial_setup', e)
                raise

            decision = select_effective_ratio(
                snapshot.total_bytes, snapshot.available_bytes,
                self._policy, device_count=self.device_count
            )
            logger.info(
                f"Initial decision: {decision.reason.value} ratio={decision.target_ratio}% "
                f"target={decision.target_total_bytes} bytes across {decision.device_count} device(s)"
            )

            result = self._apply(decision, current)
            if result.active_devices == 0:
                error = result.error or ApplyError(
                    [DeviceFailure(None, 'apply', 'no device active after setup')]
                )
                self._fail('initial_setup', error, decision=decision)
                raise error

            errors = [str(f) for f in result.failures]
            if errors:
                logger.warning(
                    f"Partial setup: {result.active_devices}/{decision.device_count} device(s) active"
                )

            swappiness_failure = self._applier.tune_swappiness()
            if swappiness_failure is not None:
                logger.warning(str(swappiness_failure))
                errors.append(str(swappiness_failure))

            self._emit(StatusEvent(
                phase='initial_setup',
                state=self._state,
                decision_reason=decision.reason,
                target_ratio=decision.target_ratio,
                target_bytes=decision.target_total_bytes,
                applied_bytes=result.applied_bytes,
                errors=errors,
                error_kind=ApplyError.kind if result.failures else None,
                mutated=result.mutated,
            ))

            if self._policy.dynamic_scaling_enabled:
                self._transition(ControllerState.MONITORING)
                logger.info(f"Dynamic scaling enabled, checking every {self._check_interval}s")
            else:
                self._transition(ControllerState.STATIC_IDLE)
                logger.info("Dynamic scaling disabled, static configuration applied")

            return LoopState(decision=decision, applied=list(result.applied))
        finally:
            phase_context.reset(token)

    def tick(self, loop_state: LoopState) -> LoopState:
        """Run one rescale cycle and return the state for the next one."""
        if self._state != ControllerState.MONITORING:
            raise RuntimeError(f"tick() requires monitoring state, not {self._state.value}")

        token = phase_context.set('rescale')
        try:
            try:
                snapshot = self._probe.read_memory()
                current = self._probe.read_device_specs()
            except ProbeError as e:
                logger.warning(f"Skipping rescale tick: {e}")
                self._emit(StatusEvent(
                    phase='rescale',
                    state=self._state,
                    decision_reason=loop_state.decision.reason if loop_state.decision else None,
                    target_ratio=loop_state.ratio,
                    target_bytes=loop_state.decision.target_total_bytes if loop_state.decision else None,
                    applied_bytes=loop_state.applied_bytes,
                    errors=[str(e)],
                    error_kind=e.kind,
                ))
                return LoopState(loop_state.decision, loop_state.applied, loop_state.ticks + 1)

            decision = select_effective_ratio(
                snapshot.total_bytes, snapshot.available_bytes, self._policy,
                device_count=self.device_count, current_ratio=loop_state.ratio
            )

            if self._applier.is_converged(decision, current):
                self._emit(StatusEvent(
                    phase='rescale',
                    state=self._state,
                    decision_reason=decision.reason,
                    target_ratio=decision.target_ratio,
                    target_bytes=decision.target_total_bytes,
                    applied_bytes=sum(spec.capacity_bytes for spec in current),
                ))
                return LoopState(decision, list(current), loop_state.ticks + 1)

            logger.info(
                f"Rescaling: ratio {loop_state.ratio}% -> {decision.target_ratio}% "
                f"({decision.reason.value}, available={snapshot.available_bytes} bytes)"
            )
            self._transition(ControllerState.APPLYING_RESCALE)
            try:
                result = self._apply(decision, current)
            finally:
                self._transition(ControllerState.MONITORING)

            if result.failures:
                logger.warning(f"Rescale incomplete, retrying next tick: {result.error}")

            self._emit(StatusEvent(
                phase='rescale',
                state=self._state,
                decision_reason=decision.reason,
                target_ratio=decision.target_ratio,
                target_bytes=decision.target_total_bytes,
                applied_bytes=result.applied_bytes,
                errors=[str(f) for f in result.failures],
                error_kind=ApplyError.kind if result.failures else None,
                mutated=result.mutated,
            ))
            return LoopState(decision, list(result.applied), loop_state.ticks + 1)
        finally:
            phase_context.reset(token)

    def run(self) -> ExitCode:
        """Initial setup, then rescale every interval until shutdown is requested.

        Returns:
            ExitCode.OK, or ExitCode.INTERRUPTED when shutdown arrived before setup began
        """
        if self._shutdown.is_shutdown_requested():
            logger.info("Shutdown requested before setup, nothing applied")
            self.stop()
            return ExitCode.INTERRUPTED

        loop_state = self.start()

        if self._state == ControllerState.MONITORING:
            while not self._shutdown.wait_for_shutdown(self._check_interval):
                loop_state = self.tick(loop_state)
            logger.info(f"Monitoring stopped after {loop_state.ticks} tick(s)")

        self.stop()
        return ExitCode.OK

    def stop(self) -> None:
        """Leave the loop; configured devices stay in service."""
        if self._state in (ControllerState.STOPPING, ControllerState.STOPPED):
            return
        self._transition(ControllerState.STOPPING)
        self._transition(ControllerState.STOPPED)

    def _apply(self, decision: ScalingDecision, current: List[ZramDeviceSpec]) -> ApplyResult:
        start_time = time.perf_counter()
        result = self._applier.apply_decision(decision, current)
        if result.mutated:
            logger.log_performance(
                'apply_decision',
                time.perf_counter() - start_time,
                devices=result.active_devices,
                failures=len(result.failures),
            )
        return result

    def _fail(self, phase: str, error: Exception,
              decision: Optional[ScalingDecision] = None) -> None:
        """Report a fatal setup error and stop."""
        logger.log_error_with_context(error, operation=phase)
        failures = getattr(error, 'failures', None)
        errors = [str(f) for f in failures] if failures else [str(error)]
        self._emit(StatusEvent(
            phase=phase,
            state=self._state,
            decision_reason=decision.reason if decision else None,
            target_ratio=decision.target_ratio if decision else None,
            target_bytes=decision.target_total_bytes if decision else None,
            errors=errors,
            error_kind=getattr(error, 'kind', type(error).__name__),
            mutated=decision is not None,
        ))
        self.stop()

    def _emit(self, event: StatusEvent) -> None:
        self._reporter.emit(event)
