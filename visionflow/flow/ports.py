"""
Node ports: typed attachment points used by graph editors.
The scheduler routes by node-id adjacency and never consults ports.
"""

import uuid
from dataclasses import dataclass, field

from ..models.enums import PortDirection, PortType


@dataclass
class NodePort:
    name: str
    port_type: PortType
    direction: PortDirection
    node_id: str
    connected: bool = False
    id: str = field(default_factory=lambda: str(uuid.uuid4()))

    @property
    def is_input(self) -> bool:
        return self.direction == PortDirection.INPUT
