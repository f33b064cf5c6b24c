"""
devices/models.py -- Domain dataclasses for devices and their traits.

These are pure data containers with zero logic. Queries live in
devices/store.py; graph assembly lives in devices/graph.py.

Device and Trait mirror table rows. DeviceView and TraitView are the
capability graph handed to the voice-assistant layer: they carry the
platform-facing names (gname) instead of type IDs.
"""

from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class DeviceType:
    """A platform device type, e.g. action.devices.types.LIGHT."""

    gname: str
    id: Optional[int] = None


@dataclass
class TraitType:
    """A platform capability, e.g. action.devices.traits.OnOff."""

    gname: str
    id: Optional[int] = None


@dataclass
class Device:
    """A device owned by exactly one user.

    id is None before the record is written to the database.
    """

    user_id: int
    name: str
    devicetype_id: int
    id: Optional[int] = None


@dataclass
class Trait:
    """A capability declared by one device.

    config is the capability's own settings (e.g. temperature ranges). Its
    schema belongs to the trait type; this repository only stores it.
    """

    device_id: int
    traittype_id: int
    config: Optional[dict[str, Any]] = None
    id: Optional[int] = None


@dataclass
class TraitView:
    trait_id: int
    capability_name: str  # trait_type.gname
    config: Optional[dict[str, Any]] = None


@dataclass
class DeviceView:
    device_id: int
    name: str
    type_name: str  # device_type.gname
    traits: list[TraitView] = field(default_factory=list)
