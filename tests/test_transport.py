"""Tests for the control channel transport."""

import errno
import threading
from unittest.mock import MagicMock

import pytest

from dysk_client import transport as transport_module
from dysk_client.constants import DEFAULT_LOCK_TIMEOUT, IOCTL_IN_OUT_MAX
from dysk_client.errors import (
    ChannelClosedError,
    ChannelTimeoutError,
    PayloadTooLargeError,
    TransportError,
    UnknownCommandError,
)
from dysk_client.transport import Command, DeviceTransport, bufferize


@pytest.fixture
def device(tmp_path):
    """Regular file standing in for /dev/dysk."""
    path = tmp_path / "dysk"
    path.touch()
    return path


@pytest.fixture
def ioctl_calls(monkeypatch):
    """Replace fcntl.ioctl with a fake driver that answers OK + the request."""
    calls = []

    def fake_ioctl(fd, code, buffer, mutate):
        calls.append((fd, code, bytes(buffer), mutate))
        request = bytes(buffer).split(b"\0", 1)[0]
        reply = b"OK\n" + request
        buffer[:] = reply + bytes(len(buffer) - len(reply))
        return 0

    monkeypatch.setattr(transport_module.fcntl, "ioctl", fake_ioctl)
    return calls


class TestBufferize:

    def test_fixed_size_and_zero_padding(self):
        buf = bufferize("disk0\n\0")
        assert len(buf) == IOCTL_IN_OUT_MAX
        assert buf[:7] == b"disk0\n\0"
        assert set(buf[7:]) == {0}

    def test_empty_payload(self):
        assert bufferize("") == bytearray(IOCTL_IN_OUT_MAX)

    def test_payload_filling_buffer(self):
        assert len(bufferize("x" * IOCTL_IN_OUT_MAX)) == IOCTL_IN_OUT_MAX

    def test_payload_too_large(self):
        with pytest.raises(PayloadTooLargeError):
            bufferize("x" * (IOCTL_IN_OUT_MAX + 1))


class TestCommand:

    def test_codes(self):
        assert [c.value for c in Command] == [9901, 9902, 9903, 9904]


class TestDeviceTransport:

    def test_execute_round_trip(self, device, ioctl_calls):
        with DeviceTransport(device) as t:
            raw = t.execute(Command.GET, "disk0\n\0")

        assert len(raw) == IOCTL_IN_OUT_MAX
        assert raw.startswith(b"OK\ndisk0\n")
        fd, code, sent, mutate = ioctl_calls[0]
        assert code == 9903
        assert mutate is True
        assert len(sent) == IOCTL_IN_OUT_MAX

    def test_closed_after_block(self, device, ioctl_calls):
        t = DeviceTransport(device)
        with t:
            assert t.is_open
        assert not t.is_open
        with pytest.raises(ChannelClosedError):
            t.execute(Command.LIST, "-")

    def test_unknown_command(self, device, ioctl_calls):
        with DeviceTransport(device) as t:
            with pytest.raises(UnknownCommandError):
                t.execute(1234, "-")
        assert ioctl_calls == []

    def test_missing_device_raises_raw_oserror(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            with DeviceTransport(tmp_path / "missing"):
                pass

    def test_ioctl_failure_is_raw_and_not_retried(self, device, monkeypatch):
        attempts = []

        def failing_ioctl(fd, code, buffer, mutate):
            attempts.append(code)
            raise OSError(errno.ENOTTY, "Inappropriate ioctl for device")

        monkeypatch.setattr(transport_module.fcntl, "ioctl", failing_ioctl)
        t = DeviceTransport(device)
        with pytest.raises(OSError) as exc_info:
            with t:
                t.execute(Command.MOUNT, "x")

        assert exc_info.value.errno == errno.ENOTTY
        assert not isinstance(exc_info.value, TransportError)
        assert attempts == [9901]
        assert not t.is_open

    def test_timeout(self, device, monkeypatch):
        release = threading.Event()

        def hung_ioctl(fd, code, buffer, mutate):
            release.wait(5)

        monkeypatch.setattr(transport_module.fcntl, "ioctl", hung_ioctl)
        t = DeviceTransport(device, timeout=0.05)
        try:
            with pytest.raises(ChannelTimeoutError):
                with t:
                    t.execute(Command.LIST, "-")
        finally:
            release.set()
        assert not t.is_open

    def test_lock_serializes_channel(self, device, tmp_path, ioctl_calls):
        lock_path = tmp_path / "dysk.lock"
        with DeviceTransport(device, lock_path=lock_path):
            other = DeviceTransport(device, lock_path=lock_path, lock_timeout=0.1)
            with pytest.raises(TransportError, match="in use"):
                other.open()
            assert not other.is_open

        # Released on close
        with DeviceTransport(device, lock_path=lock_path, lock_timeout=0.1) as t:
            assert t.is_open

    def test_lock_wait_independent_of_command_timeout(self, device, tmp_path, monkeypatch):
        lock_cls = MagicMock()
        monkeypatch.setattr(transport_module.portalocker, "Lock", lock_cls)
        lock_path = tmp_path / "dysk.lock"

        with DeviceTransport(device, timeout=None, lock_path=lock_path, lock_timeout=2.5):
            pass

        lock_cls.assert_called_once_with(str(lock_path), "w", timeout=2.5)
        lock_cls.return_value.acquire.assert_called_once_with()
        lock_cls.return_value.release.assert_called_once_with()

    def test_default_lock_timeout(self, device):
        t = DeviceTransport(device, timeout=None)
        assert t.timeout is None
        assert t.lock_timeout == DEFAULT_LOCK_TIMEOUT

    def test_lock_released_when_open_fails(self, tmp_path):
        lock_path = tmp_path / "dysk.lock"
        with pytest.raises(FileNotFoundError):
            DeviceTransport(tmp_path / "missing", lock_path=lock_path).open()

        device = tmp_path / "dysk"
        device.touch()
        with DeviceTransport(device, lock_path=lock_path, lock_timeout=0.1) as t:
            assert t.is_open
