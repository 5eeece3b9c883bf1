from .reading import Reading, Sample
from .device import DeviceType, Command, HandshakeStep
from .loader import MetadataLoader, load_device_type

__all__ = ["Reading",
           "Sample",
           "DeviceType",
           "Command",
           "HandshakeStep",
           "MetadataLoader",
           "load_device_type"]
