# temperlog/transport/errors.py
from __future__ import annotations


class TransportError(Exception):
    """Base class for USB transport failures below the protocol driver."""


class TransportOpenError(TransportError):
    """
    The device could not be brought into a usable state: enumeration found no
    backend, the configuration could not be selected or an interface could
    not be claimed.
    """


class TransportIOError(TransportError):
    """A control or interrupt transfer failed, or the handle was already closed."""
