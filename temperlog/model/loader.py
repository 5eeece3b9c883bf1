# temperlog/model/loader.py
from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml

from temperlog.core.errors import ConfigError
from .device import Command, DeviceType, HandshakeStep


def metadata_root() -> Path:
    # <package>/metadata, located relative to this file's location
    return Path(__file__).resolve().parents[1] / "metadata"


class MetadataLoader:
    """
    Loads device metadata from YAML into DeviceType models.

    Loads:
        - devices.yml

    After calling load_all(), exposes:
        self.devices     : dict[str, DeviceType]
        self.default_key : key of the default device (or None)
    """

    FILENAME = "devices.yml"

    def __init__(self, config_dir: str | Path):
        self.config_dir = Path(config_dir)
        self.devices: Dict[str, DeviceType] = {}
        self.default_key: Optional[str] = None

    # ---------------------------------------------------------------------
    # YAML utility
    # ---------------------------------------------------------------------
    def _load_yaml(self, filename: str) -> dict:
        full_path = self.config_dir / filename
        if not full_path.exists():
            raise FileNotFoundError(f"Missing metadata file: {full_path}")

        with open(full_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    # ---------------------------------------------------------------------
    # Public entry point
    # ---------------------------------------------------------------------
    def load_all(self) -> None:
        self.devices.clear()
        self.default_key = None

        data = self._load_yaml(self.FILENAME)

        devices = data.get("devices")
        if not isinstance(devices, dict) or not devices:
            raise ValueError(f"{self.FILENAME} is missing 'devices' root node")

        for key, info in devices.items():
            self.devices[str(key)] = self._parse_device(str(key), info)

        default = data.get("default")
        if default is not None:
            if str(default) not in self.devices:
                raise ValueError(f"Default device '{default}' is not defined")
            self.default_key = str(default)
        elif len(self.devices) == 1:
            self.default_key = next(iter(self.devices))

    def get(self, key: Optional[str] = None) -> DeviceType:
        k = key or self.default_key
        if k is None or k not in self.devices:
            raise KeyError(f"Unknown device '{key}'. Known: {sorted(self.devices)}")
        return self.devices[k]

    # ---------------------------------------------------------------------
    # Devices
    # ---------------------------------------------------------------------
    def _parse_device(self, key: str, info: Any) -> DeviceType:
        if not isinstance(info, dict):
            raise ValueError(f"Device {key} entry must be a mapping")

        for field in ("vendor_id", "product_id"):
            if not isinstance(info.get(field), int):
                raise ValueError(f"Device {key} is missing integer '{field}'")

        frame_size = int(info.get("frame_size", 8))
        commands = self._parse_commands(key, info.get("commands"), frame_size)
        handshake = self._parse_handshake(key, info.get("handshake"), commands)

        poll = info.get("poll")
        if poll not in commands:
            raise ValueError(f"Device {key} poll command '{poll}' not defined in commands")

        interfaces = info.get("interfaces") or [0, 1]
        if not isinstance(interfaces, list) or not all(isinstance(i, int) for i in interfaces):
            raise ValueError(f"Device {key} 'interfaces' must be a list of ints")

        control = info.get("control") or {}
        decode = info.get("decode") or {}
        if not isinstance(control, dict) or not isinstance(decode, dict):
            raise ValueError(f"Device {key} 'control'/'decode' must be mappings")

        raw_offset = int(decode.get("offset", 2))
        if raw_offset < 0 or raw_offset + 2 > frame_size:
            raise ValueError(f"Device {key} decode offset {raw_offset} outside a {frame_size}-byte frame")

        kwargs = {
            "configuration": int(info.get("configuration", 1)),
            "interfaces": interfaces,
            "endpoint_in": int(info.get("endpoint_in", 0x82)),
            "timeout_ms": int(info.get("timeout_ms", 5000)),
            "frame_size": frame_size,
            "request_type": int(control.get("request_type", 0x21)),
            "request": int(control.get("request", 0x09)),
            "raw_offset": raw_offset,
        }
        if "lsb_c" in decode:
            kwargs["lsb_c"] = float(decode["lsb_c"])

        return DeviceType(
            key=key,
            label=str(info.get("label", key)),
            vendor_id=info["vendor_id"],
            product_id=info["product_id"],
            commands=commands,
            handshake=handshake,
            poll_command=str(poll),
            **kwargs,
        )

    @staticmethod
    def _parse_commands(key: str, raw: Any, frame_size: int) -> Dict[str, Command]:
        if not isinstance(raw, dict) or not raw:
            raise ValueError(f"Device {key} 'commands' must be a non-empty mapping")

        commands: Dict[str, Command] = {}
        for name, cinfo in raw.items():
            if not isinstance(cinfo, dict):
                raise ValueError(f"Device {key} command {name} entry must be a mapping")
            try:
                payload = bytes.fromhex(str(cinfo.get("payload", "")))
            except ValueError:
                raise ValueError(f"Device {key} command {name} has an invalid hex payload") from None
            if not payload or len(payload) > frame_size:
                raise ValueError(f"Device {key} command {name} payload must be 1..{frame_size} bytes")

            commands[str(name)] = Command(
                name=str(name),
                value=int(cinfo.get("value", 0)),
                index=int(cinfo.get("index", 0)),
                payload=payload,
            )
        return commands

    @staticmethod
    def _parse_handshake(key: str, raw: Any, commands: Dict[str, Command]) -> List[HandshakeStep]:
        if not isinstance(raw, list):
            raise ValueError(f"Device {key} 'handshake' must be a list")

        steps: List[HandshakeStep] = []
        for i, sinfo in enumerate(raw):
            if not isinstance(sinfo, dict):
                raise ValueError(f"Device {key} handshake step {i} must be a mapping")
            cmd = sinfo.get("command")
            if cmd not in commands:
                raise ValueError(f"Device {key} handshake step {i} uses unknown command '{cmd}'")
            reads = int(sinfo.get("reads", 0))
            if reads < 0:
                raise ValueError(f"Device {key} handshake step {i} has negative 'reads'")
            steps.append(HandshakeStep(command=str(cmd), reads=reads))
        return steps


def load_device_type(key: Optional[str] = None, *, config_dir: str | Path | None = None) -> DeviceType:
    """
    Load one DeviceType (the catalog default when `key` is None).

    Metadata problems are reported as ConfigError.
    """
    root = Path(config_dir) if config_dir is not None else metadata_root()
    ml = MetadataLoader(root)
    try:
        ml.load_all()
        return ml.get(key)
    except (FileNotFoundError, ValueError, KeyError, yaml.YAMLError) as e:
        raise ConfigError(
            "Failed to load device metadata.",
            hint=str(e),
            details={"metadata_dir": str(root), "device": key},
        ) from None
