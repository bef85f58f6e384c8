"""Control channel transport to the dysk kernel driver.

Every command is a fixed-size buffer handed to the driver with an ioctl; the
driver overwrites the same buffer with its response. A transport is a
short-lived resource: open it for one client operation, then close it.
"""

import fcntl
import logging
import os
import threading
from enum import IntEnum
from pathlib import Path
from typing import Dict, Optional, Protocol, Union

import portalocker

from .constants import (
    DEFAULT_COMMAND_TIMEOUT,
    DEFAULT_LOCK_TIMEOUT,
    DEVICE_FILE,
    IOCTL_IN_OUT_MAX,
)
from .errors import (
    ChannelClosedError,
    ChannelTimeoutError,
    PayloadTooLargeError,
    TransportError,
    UnknownCommandError,
)

logger = logging.getLogger(__name__)


class Command(IntEnum):
    """Control channel command codes."""
    MOUNT = 9901
    UNMOUNT = 9902
    GET = 9903
    LIST = 9904


def bufferize(payload: str) -> bytearray:
    """Place a payload in a zero-padded command buffer.

    Args:
        payload: Text to send

    Returns:
        Mutable buffer of exactly ``IOCTL_IN_OUT_MAX`` bytes

    Raises:
        PayloadTooLargeError: If the encoded payload does not fit
    """
    data = payload.encode("utf-8")
    if len(data) > IOCTL_IN_OUT_MAX:
        raise PayloadTooLargeError(len(data), IOCTL_IN_OUT_MAX)
    buffer = bytearray(IOCTL_IN_OUT_MAX)
    buffer[:len(data)] = data
    return buffer


def _check_command(command: int) -> Command:
    try:
        return Command(command)
    except ValueError:
        raise UnknownCommandError(command) from None


class Transport(Protocol):
    """
    Protocol for control channel implementations.

    Implementations are context managers: the channel is open inside the
    ``with`` block and released on every exit path.
    """

    def __enter__(self) -> "Transport":
        ...

    def __exit__(self, exc_type, exc, tb) -> None:
        ...

    def execute(self, command: int, payload: str) -> bytes:
        """
        Issue one command and wait for the driver's answer.

        Args:
            command: One of the ``Command`` codes
            payload: Request text (placed in a 2048 byte buffer)

        Returns:
            The driver-populated buffer, unmodified
        """
        ...


class DeviceTransport:
    """
    Transport over the driver's character device.

    Low-level failures (device open, ioctl) surface as the raw ``OSError``
    and are never retried: the driver is synchronous and repeating a mount
    is unsafe.
    """

    def __init__(
        self,
        device_path: Union[str, Path] = DEVICE_FILE,
        timeout: Optional[float] = DEFAULT_COMMAND_TIMEOUT,
        lock_path: Optional[Union[str, Path]] = None,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT,
    ):
        """
        Initialize device transport.

        Args:
            device_path: Control device (``/dev/dysk``)
            timeout: Seconds to wait for each command (None: no bound)
            lock_path: Optional lock file serializing channel use across processes
            lock_timeout: Seconds to wait for the lock file before giving up
        """
        self.device_path = str(device_path)
        self.timeout = timeout
        self.lock_path = str(lock_path) if lock_path else None
        self.lock_timeout = lock_timeout
        self._fd: Optional[int] = None
        self._lock: Optional[portalocker.Lock] = None

    @property
    def is_open(self) -> bool:
        return self._fd is not None

    def open(self) -> None:
        if self.is_open:
            return

        if self.lock_path:
            lock = portalocker.Lock(self.lock_path, "w", timeout=self.lock_timeout)
            try:
                lock.acquire()
            except portalocker.LockException as e:
                raise TransportError(
                    f"Control channel is in use (lock held on {self.lock_path})"
                ) from e
            self._lock = lock

        try:
            self._fd = os.open(self.device_path, os.O_RDONLY)
        except OSError:
            self._release_lock()
            raise
        logger.debug("Opened control channel %s", self.device_path)

    def close(self) -> None:
        try:
            if self._fd is not None:
                os.close(self._fd)
                logger.debug("Closed control channel %s", self.device_path)
        finally:
            self._fd = None
            self._release_lock()

    def _release_lock(self) -> None:
        if self._lock is not None:
            self._lock.release()
            self._lock = None

    def __enter__(self) -> "DeviceTransport":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def execute(self, command: int, payload: str) -> bytes:
        code = _check_command(command)
        if self._fd is None:
            raise ChannelClosedError()

        buffer = bufferize(payload)
        logger.debug("Issuing %s (%d) on %s", code.name, code.value, self.device_path)
        self._ioctl(code, buffer)
        return bytes(buffer)

    def _ioctl(self, code: Command, buffer: bytearray) -> None:
        """Run the ioctl on a worker thread so a hung driver cannot block forever.

        A timed-out worker is abandoned; the ioctl itself is not interruptible.
        """
        fd = self._fd
        outcome: Dict[str, OSError] = {}

        def run() -> None:
            try:
                fcntl.ioctl(fd, int(code), buffer, True)
            except OSError as e:
                outcome["error"] = e

        worker = threading.Thread(target=run, name=f"dysk-ioctl-{int(code)}", daemon=True)
        worker.start()
        worker.join(self.timeout)

        if worker.is_alive():
            raise ChannelTimeoutError(int(code), self.timeout)
        if "error" in outcome:
            raise outcome["error"]
