"""
Entity dataclass.

An Entity is an addressable device or group known to the host: the thing
automations listen to and send commands to.
"""

from dataclasses import dataclass, field
from typing import Any, Dict


@dataclass
class Entity:
    """
    An addressable entity resolved by the host.

    Attributes:
        id: Identifier used in automation configuration (friendly name or address)
        name: Name used to build the command topic ({base_topic}/{name}/set)
        kind: "device" or "group"
        attributes: Last observed attribute snapshot (host-owned)
    """

    id: str
    name: str
    kind: str = "device"
    attributes: Dict[str, Any] = field(default_factory=dict)
