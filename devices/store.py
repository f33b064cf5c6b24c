"""
devices/store.py -- SQLAlchemy-backed persistence for devices and traits.

Uses SQLAlchemy Core (not ORM) so the dataclasses in devices/models.py remain
the authoritative domain representation. Swapping SQLite for MySQL is a
connection string change, not a rewrite.

Pattern: Repository + Data Mapper. DeviceStore is the repository; the
_row_to_* functions translate joined rows into views.

Security: all queries use bound parameters. No f-strings in SQL.

Results are always ordered by primary key so the capability graph is stable
between requests. Nothing is cached: every call reads committed rows.

Usage:
    store = DeviceStore(engine)
    light = store.create_device_type(DeviceType(gname="action.devices.types.LIGHT"))
    device_id = store.create_device(Device(user_id=uid, name="Desk lamp", devicetype_id=light))
    devices = store.get_devices_of_user(uid)
    traits = store.get_traits_of_device(device_id)
"""

import json

from sqlalchemy import Column, ForeignKey, Integer, String, Table, Text, select
from sqlalchemy.engine import Engine

from core.database import metadata
from devices.models import Device, DeviceType, DeviceView, Trait, TraitType, TraitView

# ---------------------------------------------------------------------------
# Schema
# ---------------------------------------------------------------------------

_device_types = Table(
    "device_type",
    metadata,
    Column("devicetype_id", Integer, primary_key=True, autoincrement=True),
    Column("gname", String(255), nullable=False, unique=True),
)

_trait_types = Table(
    "trait_type",
    metadata,
    Column("traittype_id", Integer, primary_key=True, autoincrement=True),
    Column("gname", String(255), nullable=False, unique=True),
)

_devices = Table(
    "device",
    metadata,
    Column("device_id", Integer, primary_key=True, autoincrement=True),
    Column("user_id", Integer, ForeignKey("user.user_id"), nullable=False),
    Column("name", String(255), nullable=False),
    Column("devicetype_id", Integer, ForeignKey("device_type.devicetype_id"), nullable=False),
)

_traits = Table(
    "trait",
    metadata,
    Column("trait_id", Integer, primary_key=True, autoincrement=True),
    Column("device_id", Integer, ForeignKey("device.device_id"), nullable=False),
    Column("traittype_id", Integer, ForeignKey("trait_type.traittype_id"), nullable=False),
    Column("config", Text),  # JSON object serialized as text, NULL when unset
)


# ---------------------------------------------------------------------------
# Repository
# ---------------------------------------------------------------------------


class DeviceStore:
    def __init__(self, engine: Engine) -> None:
        self.engine: Engine = engine

    # ------------------------------------------------------------------
    # Type catalogues
    # ------------------------------------------------------------------

    def create_device_type(self, device_type: DeviceType) -> int:
        """Insert a platform device type and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(_device_types.insert().values(gname=device_type.gname))
            conn.commit()
            return result.inserted_primary_key[0]

    def create_trait_type(self, trait_type: TraitType) -> int:
        """Insert a platform trait type and return its ID."""
        with self.engine.connect() as conn:
            result = conn.execute(_trait_types.insert().values(gname=trait_type.gname))
            conn.commit()
            return result.inserted_primary_key[0]

    # ------------------------------------------------------------------
    # Devices and traits
    # ------------------------------------------------------------------

    def create_device(self, device: Device) -> int:
        """Insert a device and return its assigned database ID."""
        with self.engine.connect() as conn:
            result = conn.execute(
                _devices.insert().values(
                    user_id=device.user_id,
                    name=device.name,
                    devicetype_id=device.devicetype_id,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def create_trait(self, trait: Trait) -> int:
        """Attach a trait to a device and return its ID. config is stored as JSON."""
        config = json.dumps(trait.config) if trait.config is not None else None
        with self.engine.connect() as conn:
            result = conn.execute(
                _traits.insert().values(
                    device_id=trait.device_id,
                    traittype_id=trait.traittype_id,
                    config=config,
                )
            )
            conn.commit()
            return result.inserted_primary_key[0]

    def get_devices_of_user(self, user_id: int) -> list[DeviceView]:
        """Return every device of a user with its type name. Traits are left empty."""
        stmt = (
            select(
                _devices.c.device_id,
                _devices.c.name,
                _device_types.c.gname,
            )
            .select_from(_devices.join(_device_types, _devices.c.devicetype_id == _device_types.c.devicetype_id))
            .where(_devices.c.user_id == user_id)
            .order_by(_devices.c.device_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_device_view(r) for r in rows]

    def get_traits_of_device(self, device_id: int) -> list[TraitView]:
        """Return every trait of a device with its capability name and decoded config.

        Raises ValueError (json.JSONDecodeError) if a stored config is not
        valid JSON.
        """
        stmt = (
            select(
                _traits.c.trait_id,
                _traits.c.config,
                _trait_types.c.gname,
            )
            .select_from(_traits.join(_trait_types, _traits.c.traittype_id == _trait_types.c.traittype_id))
            .where(_traits.c.device_id == device_id)
            .order_by(_traits.c.trait_id)
        )
        with self.engine.connect() as conn:
            rows = conn.execute(stmt).fetchall()
        return [_row_to_trait_view(r) for r in rows]

    def close(self) -> None:
        self.engine.dispose()


# ---------------------------------------------------------------------------
# Row mappers (Data Mapper pattern -- DB row -> view dataclass)
# ---------------------------------------------------------------------------


def _row_to_device_view(row) -> DeviceView:
    return DeviceView(device_id=row.device_id, name=row.name, type_name=row.gname)


def _row_to_trait_view(row) -> TraitView:
    return TraitView(
        trait_id=row.trait_id,
        capability_name=row.gname,
        config=json.loads(row.config) if row.config else None,
    )
