# temperlog/model/device.py
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Sequence, Tuple

from .codec import DEFAULT_LSB_C, FRAME_SIZE


@dataclass(frozen=True)
class Command:
    """One class-specific control OUT transfer (HID SET_REPORT)."""
    name: str
    value: int
    index: int
    payload: bytes


@dataclass(frozen=True)
class HandshakeStep:
    """Send `command`, then read and discard `reads` interrupt frames."""
    command: str
    reads: int = 0


class DeviceType:
    """
    Static model of a supported sensor family (catalog entry).

    Contains only metadata, no runtime state.

    Attributes:
        key: Stable catalog key (e.g. "temper1").
        label: Human-readable label for display/logging.
        vendor_id / product_id: USB id pair used for discovery.
        configuration: USB configuration value to select.
        interfaces: Interfaces to detach from the kernel and claim, in order.
        endpoint_in: Interrupt IN endpoint address.
        timeout_ms: Timeout applied to every transfer.
        frame_size: Size of every control payload and interrupt reply.
        request_type / request: bmRequestType / bRequest of control commands.
        commands: Named control commands.
        handshake: Ordered init sequence, run once after claiming.
        poll_command: Command re-sent before each temperature read.
        raw_offset: Byte offset of the big-endian raw word in a reply frame.
        lsb_c: Degrees Celsius per raw count.
    """

    def __init__(
        self,
        key: str,
        label: str,
        vendor_id: int,
        product_id: int,
        *,
        commands: Dict[str, Command],
        handshake: Sequence[HandshakeStep],
        poll_command: str,
        configuration: int = 1,
        interfaces: Sequence[int] = (0, 1),
        endpoint_in: int = 0x82,
        timeout_ms: int = 5000,
        frame_size: int = FRAME_SIZE,
        request_type: int = 0x21,
        request: int = 0x09,
        raw_offset: int = 2,
        lsb_c: float = DEFAULT_LSB_C,
    ):
        self.key: str = str(key)
        self.label: str = str(label)
        self.vendor_id: int = int(vendor_id)
        self.product_id: int = int(product_id)
        self.commands: Dict[str, Command] = dict(commands)
        self.handshake: Tuple[HandshakeStep, ...] = tuple(handshake)
        self.poll_command: str = str(poll_command)
        self.configuration: int = int(configuration)
        self.interfaces: Tuple[int, ...] = tuple(int(i) for i in interfaces)
        self.endpoint_in: int = int(endpoint_in)
        self.timeout_ms: int = int(timeout_ms)
        self.frame_size: int = int(frame_size)
        self.request_type: int = int(request_type)
        self.request: int = int(request)
        self.raw_offset: int = int(raw_offset)
        self.lsb_c: float = float(lsb_c)

    def command(self, name: str) -> Command:
        cmd: Optional[Command] = self.commands.get(name)
        if cmd is None:
            raise KeyError(f"Device '{self.key}' has no command '{name}'")
        return cmd

    @property
    def id_pair(self) -> str:
        return f"{self.vendor_id:04x}:{self.product_id:04x}"

    def __repr__(self) -> str:
        return f"DeviceType(key='{self.key}', id={self.id_pair}, label='{self.label}')"
