"""Tests for converging live devices to a scaling decision."""

import pytest

from zramscale.abstractions.types import MIB, DecisionReason, DeviceSettings, ScalingDecision
from zramscale.base.services.device_applier import DeviceApplier
from zramscale.base.services.system_probe import SystemProbe
from zramscale.core.errors import ApplyError


def decision(total_mib, device_count=1, ratio=60):
    return ScalingDecision(
        target_ratio=ratio,
        target_total_bytes=total_mib * MIB,
        reason=DecisionReason.TIER_DEFAULT,
        device_count=device_count,
    )


def step_names(ops):
    return [name for name, _ in ops.mutation_calls()]


class TestInitialApply:

    def test_creates_and_enables_single_device(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        result = applier.apply_decision(decision(614), [])

        assert result.ok
        assert result.mutated
        assert result.active_devices == 1
        assert result.applied_bytes == 614 * MIB
        assert ops.devices[0]['capacity'] == 614 * MIB
        assert ops.devices[0]['algorithm'] == 'lz4'
        assert ops.swaps == {'/dev/zram0': 100}

    def test_algorithm_is_set_before_capacity(self, ops, settings):
        DeviceApplier(ops, settings).apply_decision(decision(614), [])

        assert step_names(ops) == [
            'load_module', 'set_compression_algorithm', 'set_capacity', 'format_swap', 'enable_swap'
        ]

    def test_module_load_failure_leaves_no_device(self, ops, settings):
        ops.fail_on('load_module')
        result = DeviceApplier(ops, settings).apply_decision(decision(614), [])

        assert result.active_devices == 0
        assert len(result.failures) == 1
        assert result.failures[0].index is None
        assert result.failures[0].step == 'load_module'
        assert isinstance(result.error, ApplyError)
        assert ops.swaps == {}


class TestIdempotence:

    def test_second_apply_of_same_decision_is_noop(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        probe = SystemProbe(ops)
        applier.apply_decision(decision(614), probe.read_device_specs())
        ops.reset_calls()

        result = applier.apply_decision(decision(614), probe.read_device_specs())

        assert result.mutated is False
        assert result.ok
        assert result.applied_bytes == 614 * MIB
        assert ops.mutation_calls() == []

    def test_converged_only_when_every_attribute_matches(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        probe = SystemProbe(ops)
        applier.apply_decision(decision(614), [])
        current = probe.read_device_specs()

        assert applier.is_converged(decision(614), current)
        assert not applier.is_converged(decision(819), current)
        assert not applier.is_converged(decision(614, device_count=2), current)

        other = DeviceApplier(ops, DeviceSettings(compression_algorithm='zstd'))
        assert not other.is_converged(decision(614), current)


class TestRescale:

    def test_resize_swaps_off_and_resets_first(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        probe = SystemProbe(ops)
        applier.apply_decision(decision(614), [])
        ops.reset_calls()

        result = applier.apply_decision(decision(819), probe.read_device_specs())

        assert result.ok
        assert step_names(ops) == [
            'disable_swap', 'reset_device', 'set_compression_algorithm',
            'set_capacity', 'format_swap', 'enable_swap'
        ]
        assert ops.devices[0]['capacity'] == 819 * MIB
        assert ops.swaps == {'/dev/zram0': 100}

    def test_device_count_change_reloads_module(self, ops, settings):
        DeviceApplier(ops, settings).apply_decision(decision(614), [])
        applier = DeviceApplier(ops, DeviceSettings(device_count=2))
        ops.reset_calls()

        result = applier.apply_decision(decision(614, device_count=2), SystemProbe(ops).read_device_specs())

        assert result.ok
        assert result.active_devices == 2
        names = step_names(ops)
        assert names[:3] == ['disable_swap', 'unload_module', 'load_module']
        assert 'reset_device' not in names
        assert set(ops.swaps) == {'/dev/zram0', '/dev/zram1'}
        assert ops.devices[1]['capacity'] == 307 * MIB

    def test_failed_swapoff_leaves_that_device_alone(self, ops):
        settings = DeviceSettings(device_count=2)
        applier = DeviceApplier(ops, settings)
        probe = SystemProbe(ops)
        applier.apply_decision(decision(614, device_count=2), [])
        ops.fail_on('disable_swap', 1)

        result = applier.apply_decision(decision(1024, device_count=2), probe.read_device_specs())

        assert [spec.index for spec in result.applied] == [0]
        assert len(result.failures) == 1
        assert result.failures[0].index == 1
        assert result.failures[0].step == 'disable_swap'
        assert ops.devices[0]['capacity'] == 512 * MIB
        assert ops.devices[1]['capacity'] == 307 * MIB

    def test_failed_unload_swaps_old_devices_back_on(self, ops):
        DeviceApplier(ops, DeviceSettings(device_count=2)).apply_decision(
            decision(614, device_count=2), []
        )
        current = SystemProbe(ops).read_device_specs()
        ops.fail_on('unload_module')

        result = DeviceApplier(ops, DeviceSettings(device_count=1)).apply_decision(
            decision(614), current
        )

        assert [f.step for f in result.failures] == ['unload_module']
        assert result.applied == current
        assert result.applied_bytes == 614 * MIB
        assert ops.swaps == {'/dev/zram0': 100, '/dev/zram1': 100}
        assert ops.module_loaded is True
        assert step_names(ops)[-5:] == ['disable_swap', 'disable_swap', 'unload_module',
                                        'enable_swap', 'enable_swap']

    def test_failed_restore_is_reported(self, ops):
        DeviceApplier(ops, DeviceSettings(device_count=2)).apply_decision(
            decision(614, device_count=2), []
        )
        current = SystemProbe(ops).read_device_specs()
        ops.fail_on('unload_module')
        ops.fail_on('enable_swap', 1)

        result = DeviceApplier(ops, DeviceSettings(device_count=1)).apply_decision(
            decision(614), current
        )

        assert [(f.index, f.step) for f in result.failures] == [(None, 'unload_module'), (1, 'enable_swap')]
        assert [spec.index for spec in result.applied] == [0]
        assert ops.swaps == {'/dev/zram0': 100}


class TestPartialFailure:

    @pytest.mark.parametrize("failing_index", [0, 1, 2])
    def test_one_failing_device_of_three(self, ops, failing_index):
        applier = DeviceApplier(ops, DeviceSettings(device_count=3))
        ops.fail_on('format_swap', failing_index)

        result = applier.apply_decision(decision(600, device_count=3), [])

        assert result.active_devices == 2
        assert len(result.failures) == 1
        failure = result.failures[0]
        assert failure.index == failing_index
        assert failure.step == 'format_swap'
        assert f"zram{failing_index}" in str(failure)
        assert f"/dev/zram{failing_index}" not in ops.swaps

        error = result.error
        assert isinstance(error, ApplyError)
        assert error.active_devices == 2
        assert error.failures == result.failures


class TestTeardown:

    def test_swaps_off_and_unloads(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        applier.apply_decision(decision(614), [])

        failures = applier.teardown(SystemProbe(ops).read_device_specs())

        assert failures == []
        assert ops.swaps == {}
        assert ops.module_loaded is False

    def test_reports_every_failure(self, ops, settings):
        applier = DeviceApplier(ops, settings)
        applier.apply_decision(decision(614), [])
        ops.fail_on('disable_swap', 0)

        failures = applier.teardown(SystemProbe(ops).read_device_specs())

        assert [f.step for f in failures] == ['disable_swap', 'unload_module']

    def test_nothing_to_do_without_devices(self, ops, settings):
        assert DeviceApplier(ops, settings).teardown([]) == []
        assert ops.mutation_calls() == []


class TestSwappiness:

    def test_writes_configured_value(self, ops, settings):
        assert DeviceApplier(ops, settings).tune_swappiness() is None
        assert ops.swappiness == 100

    def test_disabled_when_none(self, ops):
        applier = DeviceApplier(ops, DeviceSettings(swappiness=None))
        assert applier.tune_swappiness() is None
        assert ops.mutation_calls() == []

    def test_failure_is_returned(self, ops, settings):
        ops.fail_on('set_swappiness')
        failure = DeviceApplier(ops, settings).tune_swappiness()
        assert failure.step == 'set_swappiness'
        assert ops.swappiness == 60
