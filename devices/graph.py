"""
devices/graph.py -- Capability graph assembly for one user.

The graph is the list of a user's devices, each with the traits it declares.
It is rebuilt from the store on every call; nothing is cached, so a device
added a second ago shows up on the next platform request.

Query shape: one query for the devices, then one query per device for its
traits. At the scale of a household this N+1 shape is cheaper to reason
about than a batched join.

Failure policy: fail-fast. The first failing query aborts the build with
InternalError and no partial graph is returned. A caller either gets the
complete graph or an error.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from core.errors import InternalError
from devices.models import DeviceView
from devices.store import DeviceStore

logger = logging.getLogger("gbridge.devices")


def build_capability_graph(store: DeviceStore, user_id: int) -> list[DeviceView]:
    """Return every device of user_id with its traits attached.

    A user with no devices gets an empty list. A device with no traits gets
    an empty trait list. Raises InternalError on any store failure, or when a
    stored trait config cannot be decoded.
    """
    try:
        devices = store.get_devices_of_user(user_id)
    except SQLAlchemyError as exc:
        logger.exception("Device lookup failed for user %d", user_id)
        raise InternalError() from exc

    for device in devices:
        try:
            device.traits = store.get_traits_of_device(device.device_id)
        except (SQLAlchemyError, ValueError) as exc:
            logger.exception("Trait lookup failed for device %d", device.device_id)
            raise InternalError() from exc

    logger.debug("Built capability graph for user %d: %d device(s)", user_id, len(devices))
    return devices
