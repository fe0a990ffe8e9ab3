"""
Event-chain flattening.

An event whose access was mediated through intermediate principals carries
`principal_chains`. Each chain becomes one event per consecutive hop, and
the hops are linked so selecting one edge of a chain can select the rest.
"""

import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Set

from ..core.ids import edge_id_from_resource_ids, node_id_from_resource_id
from ..core.types import Links, ResourceEvent

logger = logging.getLogger(__name__)


@dataclass
class FlattenedEvents:
    resource_events: List[ResourceEvent] = field(default_factory=list)
    event_chain_links: Dict[str, Links] = field(default_factory=dict)


def flatten_resource_events(events: Sequence[ResourceEvent]) -> FlattenedEvents:
    """
    Flatten events into per-hop events.

    Hop i goes from chain[i] to chain[i + 1] using the hop's own event type
    (defaulting to the outer event's type); the last hop goes into the
    event's resource with the outer type. Duplicate (source, target, type)
    hops are emitted once. Events without chains produce nothing.
    """
    result = FlattenedEvents()
    seen: Set[str] = set()

    for event in events:
        for chain in event.principal_chains:
            preceding_edge_id: Optional[str] = None

            for i, hop in enumerate(chain):
                if i < len(chain) - 1:
                    target = chain[i + 1].id
                    event_type = chain[i + 1].event or event.type
                else:
                    target = event.resource
                    event_type = event.type

                source_node_id = node_id_from_resource_id(hop.id)
                event_key = f"{source_node_id}-{node_id_from_resource_id(target)}-{event_type}"
                if event_key not in seen:
                    seen.add(event_key)
                    result.resource_events.append(
                        event.model_copy(update={"principal": hop.id, "resource": target, "type": event_type})
                    )

                edge_id = edge_id_from_resource_ids(hop.id, target)
                links = result.event_chain_links.setdefault(edge_id, Links())

                if preceding_edge_id is not None:
                    result.event_chain_links[preceding_edge_id].following.add(edge_id)
                    links.preceding.add(preceding_edge_id)

                preceding_edge_id = edge_id

    logger.debug(
        f"Flattened {len(events)} events into {len(result.resource_events)} hops "
        f"({len(result.event_chain_links)} linked edges)"
    )
    return result


def chain_closure(edge_id: str, links: Dict[str, Links]) -> Set[str]:
    """Every edge reachable from `edge_id` through chain links in either direction, including itself."""
    reached = {edge_id}
    pending = [edge_id]
    while pending:
        current = pending.pop()
        current_links = links.get(current)
        if current_links is None:
            continue
        for neighbour in current_links.preceding | current_links.following:
            if neighbour not in reached:
                reached.add(neighbour)
                pending.append(neighbour)
    return reached
