from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class UsbHandle(ABC):
    """
    Abstract handle on one opened USB device.

    Contract:
      - detach/set_configuration/claim/release manage interface ownership;
        detach_kernel_driver() returns False when no kernel driver was bound.
      - control_write(...) sends a class-specific OUT control transfer and
        returns the number of bytes written.
      - interrupt_read(endpoint, size, timeout_ms) returns 0..size bytes.
      - close() releases OS resources; calling it twice is harmless.

    All failures are reported as TransportError subclasses.
    """

    @abstractmethod
    def detach_kernel_driver(self, interface: int) -> bool: ...

    @abstractmethod
    def set_configuration(self, value: int) -> None: ...

    @abstractmethod
    def claim_interface(self, interface: int) -> None: ...

    @abstractmethod
    def release_interface(self, interface: int) -> None: ...

    @abstractmethod
    def control_write(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        timeout_ms: int,
    ) -> int: ...

    @abstractmethod
    def interrupt_read(self, endpoint: int, size: int, timeout_ms: int) -> bytes: ...

    @abstractmethod
    def close(self) -> None: ...

    def __enter__(self) -> "UsbHandle":
        return self

    def __exit__(self, exc_type: type | None, exc_val: BaseException | None, exc_tb: Any) -> None:
        self.close()
