"""Tests for the host health score."""

import json

import pytest

from zramscale.abstractions.types import MIB, MemorySnapshot
from zramscale.base.services.host_health import HostInfo, assess_health, temperature_band


@pytest.fixture
def memory():
    """1 GiB host with 600 MiB available (41% used)."""
    return MemorySnapshot(total_bytes=1024 * MIB, available_bytes=600 * MIB)


class TestAssessHealth:

    def test_healthy_host(self, memory):
        health = assess_health(memory, 614 * MIB, temperature_celsius=48.3,
                               load_average=(0.5, 0.4, 0.3))

        assert health.score == 100
        assert health.grade == 'EXCELLENT'
        assert health.temperature_band == 'normal'
        assert health.warnings == []

    def test_every_penalty(self):
        memory = MemorySnapshot(total_bytes=1024 * MIB, available_bytes=50 * MIB)

        health = assess_health(memory, 900 * MIB, temperature_celsius=76.0)

        assert health.score == 55
        assert health.grade == 'POOR'
        assert len(health.warnings) == 3
        assert health.temperature_band == 'warm'

    def test_memory_pressure_alone_is_good(self):
        memory = MemorySnapshot(total_bytes=1024 * MIB, available_bytes=50 * MIB)

        health = assess_health(memory, 0)

        assert health.score == 80
        assert health.grade == 'GOOD'
        assert 'memory' in health.warnings[0]

    def test_zram_share_and_heat(self, memory):
        health = assess_health(memory, 900 * MIB, temperature_celsius=81.2)

        assert health.score == 75
        assert health.grade == 'GOOD'
        assert health.temperature_band == 'hot'

    def test_thresholds_are_exclusive(self):
        memory = MemorySnapshot(total_bytes=1000 * MIB, available_bytes=100 * MIB)

        health = assess_health(memory, 800 * MIB, temperature_celsius=75.9)

        assert health.score == 100

    def test_missing_readings_cost_nothing(self, memory):
        health = assess_health(memory, 0)

        assert health.score == 100
        assert health.temperature_celsius is None
        assert health.temperature_band is None
        assert health.load_average is None

    def test_to_dict(self, memory):
        health = assess_health(memory, 614 * MIB, temperature_celsius=48.3,
                               load_average=(1.0, 0.5, 0.25))

        data = json.loads(json.dumps(health.to_dict()))

        assert data['grade'] == 'EXCELLENT'
        assert data['zram_share_percent'] == 60.0
        assert data['load_average'] == [1.0, 0.5, 0.25]
        assert data['temperature_band'] == 'normal'


@pytest.mark.parametrize("celsius,band", [
    (45.0, 'normal'),
    (69.9, 'normal'),
    (70.0, 'warm'),
    (79.9, 'warm'),
    (80.0, 'hot'),
    (None, None),
])
def test_temperature_band(celsius, band):
    assert temperature_band(celsius) == band


def test_host_description_with_unknowns():
    info = HostInfo(cpu_cores=4, kernel='6.6.31-v8+')
    assert info.describe() == "unknown device, unknown CPU, 4 core(s), kernel 6.6.31-v8+"
