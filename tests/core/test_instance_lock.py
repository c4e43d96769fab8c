"""Tests for the single-instance host lock."""

import os

import pytest

from zramscale.core.errors import ExitCode, LockContentionError
from zramscale.core.instance_lock import InstanceLock


class TestInstanceLock:

    def test_acquire_writes_pid(self, tmp_path):
        lock_file = tmp_path / 'run' / 'zramscale.lock'

        with InstanceLock(lock_file) as lock:
            assert lock.held
            assert lock_file.read_text().strip() == str(os.getpid())

        assert not lock.held

    def test_second_instance_fails_immediately(self, tmp_path):
        lock_file = tmp_path / 'zramscale.lock'

        with InstanceLock(lock_file):
            with pytest.raises(LockContentionError) as exc_info:
                InstanceLock(lock_file).acquire()

        assert exc_info.value.exit_code == ExitCode.LOCK_CONTENTION
        assert str(os.getpid()) in str(exc_info.value)

    def test_released_lock_can_be_taken_again(self, tmp_path):
        lock_file = tmp_path / 'zramscale.lock'
        first = InstanceLock(lock_file)
        first.acquire()
        first.release()

        second = InstanceLock(lock_file)
        second.acquire()
        assert second.held
        second.release()

    def test_acquire_and_release_are_idempotent(self, tmp_path):
        lock = InstanceLock(tmp_path / 'zramscale.lock')
        lock.acquire()
        lock.acquire()
        lock.release()
        lock.release()
        assert not lock.held
