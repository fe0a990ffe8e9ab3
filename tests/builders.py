"""Dataset builders shared by the unit tests."""

from datetime import datetime, timezone
from typing import List, Optional, Sequence, Tuple

from archview.core.date_filter import DateFilter
from archview.core.ids import edge_id_from_node_ids, node_id_from_resource_id
from archview.core.types import (
    GlobalContainer,
    PrincipalChainPart,
    Resource,
    ResourceEvent,
    ResourceIdPart,
)

Pair = Tuple[str, str]

SEEN = datetime(2024, 6, 1, tzinfo=timezone.utc)
WINDOW = DateFilter(
    start_date=datetime(2024, 1, 1, tzinfo=timezone.utc),
    end_date=datetime(2024, 12, 31, 23, 59, 59, tzinfo=timezone.utc),
)


def rid(*pairs: Pair) -> List[ResourceIdPart]:
    return [ResourceIdPart(type=type_, id=id_) for type_, id_ in pairs]


def nid(*pairs: Pair) -> str:
    return node_id_from_resource_id(rid(*pairs))


def eid(source: Sequence[Pair], target: Sequence[Pair]) -> str:
    return edge_id_from_node_ids(nid(*source), nid(*target))


def resource(*pairs: Pair, environments: Optional[List[str]] = None, seen: datetime = SEEN) -> Resource:
    return Resource(id=rid(*pairs), environments=environments, first_seen_at=seen, last_seen_at=seen)


def event(
    principal: Sequence[Pair],
    target: Sequence[Pair],
    type_: str = "Read",
    via: Sequence[Tuple[Sequence[Pair], Optional[str]]] = (),
    seen: datetime = SEEN,
) -> ResourceEvent:
    """An event whose single principal chain is `principal` followed by the `via` hops."""
    chain = [PrincipalChainPart(id=rid(*principal))]
    chain.extend(PrincipalChainPart(id=rid(*hop), event=hop_type) for hop, hop_type in via)
    return ResourceEvent(
        principal=rid(*principal),
        resource=rid(*target),
        type=type_,
        principal_chains=[chain],
        first_seen_at=seen,
        last_seen_at=seen,
    )


def container(id_: Sequence[Pair], contains: Sequence[Pair]) -> GlobalContainer:
    return GlobalContainer(id=rid(*id_), contains=rid(*contains))


# Shared identifiers
ACCOUNT = (("AWS Account", "A"),)
ROLE_1 = ACCOUNT + (("IAM Role", "P1"),)
ROLE_2 = ACCOUNT + (("IAM Role", "P2"),)
SECRET = (("Secret Value", "abcdef1234567890"),)

# The WINDOW bounds as CLI options
WINDOW_ARGS = ["--start", "2024-01-01T00:00:00+00:00", "--end", "2024-12-31T23:59:59+00:00"]
