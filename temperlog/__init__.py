"""Acquisition, storage and analysis for TEMPer USB thermometers."""

__version__ = "1.0.0"
