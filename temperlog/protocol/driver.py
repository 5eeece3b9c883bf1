# temperlog/protocol/driver.py
from __future__ import annotations

import logging
import time
from typing import Any, Callable, List, Optional, Sequence

from temperlog.core.errors import (
    DeviceClaimFailedError,
    DeviceNotFoundError,
    PollError,
    ProtocolError,
)
from temperlog.model.codec import decode_frame
from temperlog.model.device import Command, DeviceType
from temperlog.model.reading import Sample
from temperlog.transport.base import UsbHandle
from temperlog.transport.errors import TransportError
from temperlog.transport.usb import PyUsbHandle, find_devices

Finder = Callable[[int, int], Sequence[Any]]
Opener = Callable[[Any], UsbHandle]


class TemperDriver:
    """
    Protocol driver for one TEMPer sensor.

    Responsibilities:
      - select the device_index-th matching device on the bus
      - detach kernel drivers, select the configuration, claim interfaces
      - run the init handshake exactly once per open()
      - poll: request + read + decode one calibrated Celsius value
      - release everything on close()

    Handshake failures raise; steady-state poll failures raise PollError from
    poll() but are folded into a failed Sample by get_temperature().
    """

    def __init__(
        self,
        device_type: DeviceType,
        *,
        device_index: int = 0,
        calibration: int = 0,
        debug: bool = False,
        finder: Finder = find_devices,
        opener: Opener = PyUsbHandle,
        clock: Callable[[], float] = time.time,
        logger: Optional[logging.Logger] = None,
    ):
        if device_index < 0:
            raise ValueError("device_index must be >= 0")
        self.device_type = device_type
        self.device_index = int(device_index)
        self.calibration = int(calibration)
        self.debug = bool(debug)
        self._finder = finder
        self._opener = opener
        self._clock = clock
        self._log = logger or logging.getLogger(__name__)

        self._handle: Optional[UsbHandle] = None
        self._claimed: List[int] = []

    @property
    def is_open(self) -> bool:
        return self._handle is not None

    # ------------------------------------------------------------------
    # open / handshake
    # ------------------------------------------------------------------
    def open(self) -> None:
        if self.is_open:
            return

        handle = self._discover()
        self._handle = handle
        try:
            self._detach_all()
            self._configure_and_claim()
            self._handshake()
        except BaseException:
            self.close()
            raise

        self._log.info(
            "DEVICE_READY id=%s index=%d calibration=%d",
            self.device_type.id_pair, self.device_index, self.calibration,
        )

    def _discover(self) -> UsbHandle:
        dt = self.device_type
        try:
            devices = list(self._finder(dt.vendor_id, dt.product_id))
        except TransportError as e:
            raise DeviceNotFoundError(
                "USB enumeration failed.",
                hint=str(e),
                details={"vendor_id": dt.vendor_id, "product_id": dt.product_id},
            ) from None

        if len(devices) <= self.device_index:
            raise DeviceNotFoundError(
                f"Couldn't find USB device {dt.id_pair} #{self.device_index}.",
                hint=f"{len(devices)} matching device(s) attached.",
                details={"found": len(devices), "device_index": self.device_index},
            )

        if self.debug:
            self._log.debug("DEVICE_FOUND id=%s index=%d", dt.id_pair, self.device_index)

        try:
            return self._opener(devices[self.device_index])
        except TransportError as e:
            raise DeviceClaimFailedError(
                "Could not open USB device.",
                hint=str(e),
                details={"device_index": self.device_index},
            ) from None

    def _detach_all(self) -> None:
        assert self._handle is not None
        for iface in self.device_type.interfaces:
            try:
                detached = self._handle.detach_kernel_driver(iface)
            except TransportError as e:
                # may already be free; only worth mentioning in debug mode
                if self.debug:
                    self._log.debug("DETACH_FAILED interface=%d err=%s (continuing)", iface, e)
                continue
            if self.debug:
                self._log.debug("DETACH interface=%d %s", iface, "ok" if detached else "already detached")

    def _configure_and_claim(self) -> None:
        assert self._handle is not None
        dt = self.device_type
        try:
            self._handle.set_configuration(dt.configuration)
        except TransportError as e:
            raise DeviceClaimFailedError(
                f"Could not set configuration {dt.configuration}.",
                hint=str(e),
                details={"configuration": dt.configuration},
            ) from None

        for iface in dt.interfaces:
            try:
                self._handle.claim_interface(iface)
            except TransportError as e:
                raise DeviceClaimFailedError(
                    f"Could not claim interface {iface}.",
                    hint=str(e),
                    details={"interface": iface},
                ) from None
            self._claimed.append(iface)

    def _handshake(self) -> None:
        dt = self.device_type
        for step_no, step in enumerate(dt.handshake, start=1):
            cmd = dt.command(step.command)
            try:
                self._send(cmd)
                for _ in range(step.reads):
                    self._read_frame()
            except TransportError as e:
                self._log.error("HANDSHAKE_STEP_FAILED step=%d command=%s err=%s", step_no, cmd.name, e)
                raise ProtocolError(
                    f"Initialization handshake failed at step {step_no} ({cmd.name}).",
                    hint=str(e),
                    details={"step": step_no, "command": cmd.name},
                ) from None

    # ------------------------------------------------------------------
    # raw I/O
    # ------------------------------------------------------------------
    def _send(self, cmd: Command) -> None:
        assert self._handle is not None
        dt = self.device_type
        n = self._handle.control_write(
            dt.request_type, dt.request, cmd.value, cmd.index, cmd.payload, dt.timeout_ms
        )
        if n < 0:
            raise TransportError(f"control write returned {n}")
        if self.debug:
            self._log.debug("TX %s: %s", cmd.name, cmd.payload.hex(" "))

    def _read_frame(self) -> bytes:
        assert self._handle is not None
        dt = self.device_type
        frame = self._handle.interrupt_read(dt.endpoint_in, dt.frame_size, dt.timeout_ms)
        if len(frame) != dt.frame_size:
            raise TransportError(f"short interrupt read: {len(frame)}/{dt.frame_size} bytes")
        if self.debug:
            self._log.debug("RX %s", frame.hex(" "))
        return frame

    # ------------------------------------------------------------------
    # polling
    # ------------------------------------------------------------------
    def poll(self) -> float:
        """Request, read and decode one temperature in Celsius."""
        if self._handle is None:
            raise PollError("Sensor is not open.")

        dt = self.device_type
        try:
            self._send(dt.command(dt.poll_command))
            frame = self._read_frame()
        except TransportError as e:
            raise PollError(
                "Temperature read failed.",
                hint=str(e),
                details={"device_index": self.device_index},
            ) from None

        return decode_frame(frame, calibration=self.calibration, offset=dt.raw_offset, lsb_c=dt.lsb_c)

    def get_temperature(self, now: Optional[float] = None) -> Sample:
        """
        Poll once and wrap the outcome; never raises on a failed read.
        """
        try:
            tempc = self.poll()
        except PollError as e:
            ts = self._clock() if now is None else now
            self._log.warning("POLL_FAILED index=%d err=%s hint=%s", self.device_index, e.message, e.hint)
            return Sample.failed_at(int(ts), f"{e.message} {e.hint or ''}".strip())

        ts = self._clock() if now is None else now
        return Sample.ok_at(int(ts), tempc)

    # ------------------------------------------------------------------
    # shutdown
    # ------------------------------------------------------------------
    def close(self) -> None:
        handle = self._handle
        if handle is None:
            return

        for iface in list(self._claimed):
            try:
                handle.release_interface(iface)
            except TransportError:
                self._log.exception("Failed to release interface %d", iface)
        self._claimed.clear()

        try:
            handle.close()
        except TransportError:
            self._log.exception("Failed to close USB handle")
        finally:
            self._handle = None

    def __enter__(self) -> "TemperDriver":
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()
