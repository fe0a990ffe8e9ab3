"""
Injected side-effect capabilities.

The reducer never talks to the network or a render surface directly; the
host supplies these instead.
"""

from dataclasses import dataclass
from typing import Callable, List, Optional, Protocol

from ..core.types import ResourceIdPart
from ..graph.builder import LabelWidth

PersistCallback = Callable[[Optional[str]], None]


class EnvironmentPersister(Protocol):
    """Stores a resource's directly tagged environments."""

    def persist(
        self,
        resource_id: List[ResourceIdPart],
        environments: List[str],
        callback: Optional[PersistCallback] = None,
    ) -> None:
        ...


@dataclass
class Capabilities:
    persister: Optional[EnvironmentPersister] = None
    label_width: Optional[LabelWidth] = None
