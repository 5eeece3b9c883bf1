# temperlog/transport/usb.py
from __future__ import annotations

from typing import Any, List

import usb.core
import usb.util
from usb.core import USBError

from .base import UsbHandle
from .errors import TransportIOError, TransportOpenError


def find_devices(vendor_id: int, product_id: int) -> List[Any]:
    """
    Enumerate attached devices matching the id pair, in bus order.
    """
    try:
        return list(usb.core.find(find_all=True, idVendor=vendor_id, idProduct=product_id))
    except usb.core.NoBackendError as e:
        raise TransportOpenError(f"no USB backend available (is libusb installed?): {e}") from None
    except USBError as e:
        raise TransportOpenError(f"USB enumeration failed: {e}") from None


def describe_device(device: Any) -> dict:
    return {
        "bus": getattr(device, "bus", None),
        "address": getattr(device, "address", None),
        "vendor_id": f"{int(device.idVendor):04x}",
        "product_id": f"{int(device.idProduct):04x}",
    }


class PyUsbHandle(UsbHandle):
    """
    UsbHandle implemented via pyusb (libusb backend).

    Notes:
      - interrupt_read() returns whatever the device delivered; short reads are
        reported to the caller, not treated as errors here.
      - close() releases pyusb's cached resources for the device.
    """

    def __init__(self, device: Any):
        self.device = device
        self._closed = False

    def _require_open(self, op: str) -> Any:
        if self._closed:
            raise TransportIOError(f"{op} while handle closed")
        return self.device

    def detach_kernel_driver(self, interface: int) -> bool:
        dev = self._require_open("detach")
        try:
            if not dev.is_kernel_driver_active(interface):
                return False
        except NotImplementedError:
            # backend cannot tell (e.g. non-Linux); nothing to detach
            return False
        except USBError as e:
            raise TransportIOError(f"kernel driver query failed on interface {interface}: {e}") from None

        try:
            dev.detach_kernel_driver(interface)
            return True
        except USBError as e:
            raise TransportIOError(f"detach failed on interface {interface}: {e}") from None

    def set_configuration(self, value: int) -> None:
        dev = self._require_open("set_configuration")
        try:
            dev.set_configuration(value)
        except USBError as e:
            raise TransportOpenError(f"could not set configuration {value}: {e}") from None

    def claim_interface(self, interface: int) -> None:
        dev = self._require_open("claim_interface")
        try:
            usb.util.claim_interface(dev, interface)
        except USBError as e:
            raise TransportOpenError(f"could not claim interface {interface}: {e}") from None

    def release_interface(self, interface: int) -> None:
        dev = self._require_open("release_interface")
        try:
            usb.util.release_interface(dev, interface)
        except USBError as e:
            raise TransportIOError(f"could not release interface {interface}: {e}") from None

    def control_write(
        self,
        request_type: int,
        request: int,
        value: int,
        index: int,
        data: bytes,
        timeout_ms: int,
    ) -> int:
        dev = self._require_open("control_write")
        try:
            return int(dev.ctrl_transfer(request_type, request, value, index, bytes(data), timeout_ms))
        except USBError as e:
            raise TransportIOError(f"USB control write failed: {e}") from None

    def interrupt_read(self, endpoint: int, size: int, timeout_ms: int) -> bytes:
        dev = self._require_open("interrupt_read")
        try:
            return bytes(dev.read(endpoint, size, timeout_ms))
        except USBError as e:
            raise TransportIOError(f"USB interrupt read failed: {e}") from None

    def close(self) -> None:
        if self._closed:
            return
        try:
            usb.util.dispose_resources(self.device)
        finally:
            self._closed = True
