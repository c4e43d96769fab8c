"""Tests for the scratch-device compression benchmark."""

import itertools

import pytest

from zramscale.abstractions.types import MIB
from zramscale.base.services.benchmark import PATTERNS, BenchmarkResult, ZramBenchmark
from zramscale.core.errors import BenchmarkError, ExitCode


@pytest.fixture
def loaded_ops(ops):
    ops.load_module(1)
    ops.reset_calls()
    return ops


def ticking_clock(step=0.5):
    counter = itertools.count()
    return lambda: next(counter) * step


class TestPatterns:

    @pytest.mark.parametrize("name", sorted(PATTERNS))
    def test_exact_size(self, name):
        assert len(PATTERNS[name](4096 + 7)) == 4096 + 7

    def test_zeros_and_mixed(self):
        assert PATTERNS['zeros'](64) == bytes(64)
        mixed = PATTERNS['mixed'](64)
        assert mixed[32:] == bytes(32)


class TestZramBenchmark:

    def test_runs_each_pattern_on_a_scratch_device(self, loaded_ops):
        benchmark = ZramBenchmark(loaded_ops, MIB, 'zstd', clock=ticking_clock())

        results = benchmark.run(['zeros', 'repeating'])

        assert [r.pattern for r in results] == ['zeros', 'repeating']
        assert all(r.compression_ratio == 4.0 for r in results)
        assert all(r.duration_seconds == 0.5 for r in results)
        assert results[0].throughput_mb_per_second == 2.0
        assert results[0].mem_used_bytes == MIB // 4 + 4096

        added = [c for c in loaded_ops.calls if c[0] == 'hot_add_device']
        removed = [c for c in loaded_ops.calls if c[0] == 'hot_remove_device']
        assert len(added) == len(removed) == 2
        assert set(loaded_ops.devices) == {0}

    def test_configures_device_before_writing(self, loaded_ops):
        ZramBenchmark(loaded_ops, MIB, 'lz4hc', clock=ticking_clock()).run_pattern('random')

        names = [name for name, _ in loaded_ops.mutation_calls()]
        assert names == ['hot_add_device', 'set_compression_algorithm', 'set_capacity',
                         'write_device', 'hot_remove_device']

    def test_scratch_device_removed_on_failure(self, loaded_ops):
        loaded_ops.fail_on('write_device')

        with pytest.raises(OSError):
            ZramBenchmark(loaded_ops, MIB, 'lz4').run_pattern('zeros')

        assert set(loaded_ops.devices) == {0}

    def test_step_failure_raised_as_benchmark_error(self, loaded_ops):
        loaded_ops.fail_on('set_capacity')

        with pytest.raises(BenchmarkError) as exc_info:
            ZramBenchmark(loaded_ops, MIB, 'lz4').run(['zeros'])

        assert "pattern 'zeros'" in str(exc_info.value)
        assert exc_info.value.exit_code == ExitCode.SETUP_FAILED
        assert set(loaded_ops.devices) == {0}

    def test_module_not_loaded(self, ops):
        with pytest.raises(BenchmarkError) as exc_info:
            ZramBenchmark(ops, MIB, 'lz4').run(['zeros'])

        assert 'not loaded' in str(exc_info.value)
        assert ops.mutation_calls() == []

    def test_active_swap_device_untouched(self, loaded_ops):
        ZramBenchmark(loaded_ops, MIB, 'lz4', clock=ticking_clock()).run(['mixed'])

        touched = {index for name, index in loaded_ops.mutation_calls() if index is not None}
        assert 0 not in touched

    def test_unknown_pattern_rejected_up_front(self, loaded_ops):
        with pytest.raises(ValueError):
            ZramBenchmark(loaded_ops, MIB, 'lz4').run(['zeros', 'fractal'])
        assert loaded_ops.mutation_calls() == []

    def test_size_must_be_positive(self, loaded_ops):
        with pytest.raises(ValueError):
            ZramBenchmark(loaded_ops, 0, 'lz4')


class TestBenchmarkResult:

    def test_to_dict(self):
        result = BenchmarkResult('zeros', 10 * MIB, 0.0, 10 * MIB, 0, 4096)

        data = result.to_dict()

        assert data['compression_ratio'] is None
        assert data['throughput_mb_per_second'] is None
        assert data['mem_used_bytes'] == 4096
