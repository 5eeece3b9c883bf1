from __future__ import annotations

import logging

import pytest

from temperlog.core.errors import (
    DeviceClaimFailedError,
    DeviceNotFoundError,
    PollError,
    ProtocolError,
)
from temperlog.model.loader import load_device_type
from temperlog.protocol.driver import TemperDriver
from temperlog.transport.base import UsbHandle
from temperlog.transport.errors import TransportIOError, TransportOpenError

TEMP_QUERY = bytes([0x01, 0x80, 0x33, 0x01, 0x00, 0x00, 0x00, 0x00])
INI1 = bytes([0x01, 0x82, 0x77, 0x01, 0x00, 0x00, 0x00, 0x00])
INI2 = bytes([0x01, 0x86, 0xFF, 0x01, 0x00, 0x00, 0x00, 0x00])

# 0x1600 raw -> 22.0 C
FRAME_22C = bytes([0x80, 0x02, 0x16, 0x00, 0x4E, 0x20, 0x00, 0x00])
ZERO_FRAME = bytes(8)


class FakeHandle(UsbHandle):
    def __init__(self):
        self.events = []
        self.frames = []
        self.closed = 0

        self.fail_detach = set()
        self.fail_claim = set()
        self.fail_config = False
        self.fail_ctrl_at = None   # 1-based index of control write to fail
        self.fail_read_at = None   # 1-based index of interrupt read to fail
        self.short_read_at = None

        self._ctrl_count = 0
        self._read_count = 0

    def detach_kernel_driver(self, interface):
        self.events.append(("detach", interface))
        if interface in self.fail_detach:
            raise TransportIOError("detach failed")
        return True

    def set_configuration(self, value):
        self.events.append(("config", value))
        if self.fail_config:
            raise TransportOpenError("could not set configuration")

    def claim_interface(self, interface):
        self.events.append(("claim", interface))
        if interface in self.fail_claim:
            raise TransportOpenError("busy")

    def release_interface(self, interface):
        self.events.append(("release", interface))

    def control_write(self, request_type, request, value, index, data, timeout_ms):
        self._ctrl_count += 1
        self.events.append(("ctrl", request_type, request, value, index, bytes(data), timeout_ms))
        if self.fail_ctrl_at == self._ctrl_count:
            raise TransportIOError("control write failed")
        return len(data)

    def interrupt_read(self, endpoint, size, timeout_ms):
        self._read_count += 1
        self.events.append(("read", endpoint, size, timeout_ms))
        if self.fail_read_at == self._read_count:
            raise TransportIOError("timeout")
        if self.short_read_at == self._read_count:
            return b"\x00\x01\x02"
        return self.frames.pop(0) if self.frames else ZERO_FRAME

    def close(self):
        self.closed += 1
        self.events.append(("close",))


@pytest.fixture()
def device_type():
    return load_device_type()


def make_driver(device_type, handle, *, n_devices=1, **kw):
    opened = []

    def finder(vid, pid):
        assert (vid, pid) == (0x0C45, 0x7401)
        return [f"dev{i}" for i in range(n_devices)]

    def opener(dev):
        opened.append(dev)
        return handle

    drv = TemperDriver(device_type, finder=finder, opener=opener, clock=lambda: 1700000000.5, **kw)
    return drv, opened


def io_events(handle):
    return [e for e in handle.events if e[0] in ("ctrl", "read")]


def test_open_runs_setup_and_handshake_in_order(device_type):
    h = FakeHandle()
    drv, opened = make_driver(device_type, h)

    drv.open()

    assert drv.is_open
    assert opened == ["dev0"]
    assert h.events[:5] == [
        ("detach", 0),
        ("detach", 1),
        ("config", 1),
        ("claim", 0),
        ("claim", 1),
    ]
    assert io_events(h) == [
        ("ctrl", 0x21, 0x09, 0x0201, 0x00, b"\x01\x01", 5000),
        ("ctrl", 0x21, 0x09, 0x0200, 0x01, TEMP_QUERY, 5000),
        ("read", 0x82, 8, 5000),
        ("ctrl", 0x21, 0x09, 0x0200, 0x01, INI1, 5000),
        ("read", 0x82, 8, 5000),
        ("ctrl", 0x21, 0x09, 0x0200, 0x01, INI2, 5000),
        ("read", 0x82, 8, 5000),
        ("read", 0x82, 8, 5000),
    ]


def test_open_twice_runs_handshake_once(device_type):
    h = FakeHandle()
    drv, opened = make_driver(device_type, h)

    drv.open()
    drv.open()

    assert opened == ["dev0"]
    assert len([e for e in h.events if e[0] == "ctrl"]) == 4


def test_selects_kth_matching_device(device_type):
    h = FakeHandle()
    drv, opened = make_driver(device_type, h, n_devices=3, device_index=2)

    drv.open()

    assert opened == ["dev2"]


def test_device_index_out_of_range_raises_without_io(device_type):
    h = FakeHandle()
    drv, opened = make_driver(device_type, h, n_devices=1, device_index=1)

    with pytest.raises(DeviceNotFoundError) as ei:
        drv.open()

    assert ei.value.details["found"] == 1
    assert opened == []
    assert h.events == []
    assert not drv.is_open


def test_no_devices_raises_not_found(device_type):
    drv, opened = make_driver(device_type, FakeHandle(), n_devices=0)

    with pytest.raises(DeviceNotFoundError):
        drv.open()
    assert opened == []


def test_detach_failure_is_not_fatal(device_type):
    h = FakeHandle()
    h.fail_detach = {0, 1}
    drv, _ = make_driver(device_type, h)

    drv.open()

    assert drv.is_open
    assert ("claim", 1) in h.events


def test_detach_failure_logged_only_in_debug(device_type, caplog):
    caplog.set_level(logging.DEBUG, logger="temperlog.protocol.driver")

    h = FakeHandle()
    h.fail_detach = {0}
    drv, _ = make_driver(device_type, h)
    drv.open()
    assert "DETACH_FAILED" not in caplog.text

    h2 = FakeHandle()
    h2.fail_detach = {0}
    drv2, _ = make_driver(device_type, h2, debug=True)
    drv2.open()
    assert "DETACH_FAILED" in caplog.text


def test_set_configuration_failure_raises_claim_failed_and_closes(device_type):
    h = FakeHandle()
    h.fail_config = True
    drv, _ = make_driver(device_type, h)

    with pytest.raises(DeviceClaimFailedError):
        drv.open()

    assert h.closed == 1
    assert not drv.is_open
    assert io_events(h) == []


def test_claim_failure_releases_claimed_interfaces(device_type):
    h = FakeHandle()
    h.fail_claim = {1}
    drv, _ = make_driver(device_type, h)

    with pytest.raises(DeviceClaimFailedError) as ei:
        drv.open()

    assert ei.value.details == {"interface": 1}
    assert ("release", 0) in h.events
    assert ("release", 1) not in h.events
    assert h.closed == 1


def test_control_write_failure_aborts_handshake(device_type):
    h = FakeHandle()
    h.fail_ctrl_at = 1
    drv, _ = make_driver(device_type, h)

    with pytest.raises(ProtocolError) as ei:
        drv.open()

    assert ei.value.details == {"step": 1, "command": "init"}
    assert not drv.is_open
    assert h.closed == 1
    assert h.events[-3:] == [("release", 0), ("release", 1), ("close",)]


def test_short_read_during_handshake_is_fatal(device_type):
    h = FakeHandle()
    h.short_read_at = 4  # second read after ini2
    drv, _ = make_driver(device_type, h)

    with pytest.raises(ProtocolError) as ei:
        drv.open()

    assert ei.value.details["step"] == 4
    assert not drv.is_open
    with pytest.raises(PollError):
        drv.poll()


def test_poll_sends_query_and_decodes(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()
    h.frames = [FRAME_22C]
    before = len(h.events)

    assert drv.poll() == 22.0
    assert h.events[before:] == [
        ("ctrl", 0x21, 0x09, 0x0200, 0x01, TEMP_QUERY, 5000),
        ("read", 0x82, 8, 5000),
    ]


def test_poll_applies_calibration_before_scaling(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h, calibration=256)
    drv.open()
    h.frames = [FRAME_22C]

    # (0x1600 + 256) * 125 / 32000
    assert drv.poll() == 23.0


def test_negative_calibration(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h, calibration=-512)
    drv.open()
    h.frames = [FRAME_22C]

    assert drv.poll() == 20.0


def test_poll_read_failure_raises_poll_error(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()
    h.fail_read_at = h._read_count + 1

    with pytest.raises(PollError):
        drv.poll()


def test_poll_short_read_raises_poll_error(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()
    h.short_read_at = h._read_count + 1

    with pytest.raises(PollError):
        drv.poll()


def test_get_temperature_ok_sample(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()
    h.frames = [FRAME_22C]

    s = drv.get_temperature()

    assert s.ok
    assert s.timestamp == 1700000000
    assert s.temperature_c == 22.0


def test_get_temperature_failure_returns_failed_sample(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()
    h.fail_ctrl_at = h._ctrl_count + 1

    s = drv.get_temperature(now=1234.0)

    assert not s.ok
    assert s.timestamp == 1234
    assert s.temperature_c is None
    assert "Temperature read failed" in s.error


def test_get_temperature_when_not_open_returns_failed_sample(device_type):
    drv, _ = make_driver(device_type, FakeHandle())

    s = drv.get_temperature()

    assert not s.ok
    assert s.temperature_c is None


def test_close_releases_both_interfaces_then_closes(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)
    drv.open()

    drv.close()

    assert h.events[-3:] == [("release", 0), ("release", 1), ("close",)]
    assert not drv.is_open


def test_close_is_idempotent(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)

    drv.close()  # never opened
    drv.open()
    drv.close()
    drv.close()

    assert h.closed == 1


def test_context_manager_opens_and_closes(device_type):
    h = FakeHandle()
    drv, _ = make_driver(device_type, h)

    with drv as d:
        assert d.is_open

    assert h.closed == 1


def test_debug_mode_logs_frames(device_type, caplog):
    caplog.set_level(logging.DEBUG, logger="temperlog.protocol.driver")
    h = FakeHandle()
    drv, _ = make_driver(device_type, h, debug=True)

    drv.open()

    assert "TX init: 01 01" in caplog.text
    assert "RX 00 00 00 00 00 00 00 00" in caplog.text


def test_negative_device_index_rejected(device_type):
    with pytest.raises(ValueError):
        TemperDriver(device_type, device_index=-1)
