"""
Core type definitions for archview.

Input records (resources, events, global containers) mirror the dataset
returned by the query API. Graph types (Node, Edge) carry both the current
display hierarchy (`parent_id`) and the true hierarchy (`original_parent_id`)
so coalesced and collapsed views can always be undone.
"""

from datetime import datetime
from enum import StrEnum
from typing import Dict, FrozenSet, List, Optional, Set

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .date_filter import DateFilter, ensure_utc


class LayoutState(StrEnum):
    """Stages of the measurement/layout pipeline."""
    INITIAL = "initial"
    INITIAL_RENDER_COMPLETED = "initialRenderCompleted"
    MEASURED = "measured"
    LAID_OUT = "laidOut"


class MenuSection(StrEnum):
    """The view the graph is rendered for."""
    SECRETS = "secrets"
    ENVIRONMENTS = "environments"
    INVENTORY = "inventory"


class InitialCollapseNodesType(StrEnum):
    """Which nodes start expanded when the graph is built."""
    NONE = "none"
    ALL = "all"
    ENVIRONMENTS = "environments"


# =============================================================================
# Input Records
# =============================================================================

class ResourceIdPart(BaseModel):
    """One typed segment of a hierarchical resource id."""
    type: str
    id: str

    model_config = ConfigDict(frozen=True)


ResourceId = List[ResourceIdPart]


class _SeenAt(BaseModel):
    first_seen_at: datetime
    last_seen_at: datetime

    @field_validator("first_seen_at", "last_seen_at")
    @classmethod
    def _aware(cls, value: datetime) -> datetime:
        return ensure_utc(value)


class Resource(_SeenAt):
    id: ResourceId
    # Directly tagged environments only
    environments: Optional[List[str]] = None


class PrincipalChainPart(BaseModel):
    id: ResourceId
    event: Optional[str] = None


class ResourceEvent(_SeenAt):
    principal: ResourceId
    resource: ResourceId
    type: str
    principal_chains: List[List[PrincipalChainPart]] = Field(default_factory=list)


class GlobalContainer(BaseModel):
    """Display override placing `contains` inside `id`."""
    id: ResourceId
    contains: ResourceId


class QueryResponse(BaseModel):
    """The dataset fetched per account."""
    resources: List[Resource] = Field(default_factory=list)
    events: List[ResourceEvent] = Field(default_factory=list)
    global_containers: List[GlobalContainer] = Field(default_factory=list)


# =============================================================================
# Graph Types
# =============================================================================

class Point(BaseModel):
    x: float = 0.0
    y: float = 0.0


class NodeEnvironment(BaseModel):
    name: str
    color_index: int
    inherited_from: Optional[ResourceId] = None


class InheritedEnvironment(BaseModel):
    """An environment applying to a resource; `inherited_from` is None for direct tags."""
    inherited_from: Optional[ResourceId] = None

    model_config = ConfigDict(frozen=True)


ResourceEnvironments = Dict[str, InheritedEnvironment]


class Node(BaseModel):
    """
    A resource (or synthesized ancestor) in the graph.

    `parent_id` is the current display parent and changes under coalescing
    and layout; `original_parent_id` is the true hierarchy and never changes
    after the graph is built.
    """
    id: str
    resource_id: ResourceId
    parent_id: Optional[str] = None
    extent: Optional[str] = None
    position: Point = Field(default_factory=Point)
    absolute_position: Point = Field(default_factory=Point)
    width: Optional[float] = None
    height: Optional[float] = None

    original_parent_id: Optional[str] = None
    original_parent_resource_id: Optional[ResourceId] = None
    parent_resource_id: Optional[ResourceId] = None

    collapsed: bool = True
    # None means "never hidden"; False means explicitly revealed
    hidden: Optional[bool] = None
    selected: bool = False
    highlighted: bool = False
    num_children: int = 0

    environments: List[NodeEnvironment] = Field(default_factory=list)
    resource_issue_ids: List[str] = Field(default_factory=list)
    first_seen_at: Optional[datetime] = None
    last_seen_at: Optional[datetime] = None


class EdgeLabel(BaseModel):
    text: str
    width: Optional[float] = None
    x: Optional[float] = None
    y: Optional[float] = None


class EdgeSection(BaseModel):
    """A routed edge path; coordinates are absolute once back-translated."""
    start_point: Point
    end_point: Point
    bend_points: List[Point] = Field(default_factory=list)
    incoming_shape: Optional[str] = None
    outgoing_shape: Optional[str] = None


class Edge(BaseModel):
    id: str
    source: str
    target: str
    original_source_id: Optional[str] = None
    original_target_id: Optional[str] = None
    label: EdgeLabel
    events: List[ResourceEvent] = Field(default_factory=list)
    hidden: Optional[bool] = None
    selected: bool = False
    section: Optional[EdgeSection] = None


# =============================================================================
# Engine State
# =============================================================================

class Issue(BaseModel):
    """
    A detected anomaly. The id is derived from the participating identities
    so re-running detection over the same input yields identical issues.
    """
    id: str
    message: str
    resource_ids: List[str]
    edge_ids: List[str]

    model_config = ConfigDict(frozen=True)


class Links(BaseModel):
    """Edge keys immediately before and after an edge in event chains."""
    preceding: Set[str] = Field(default_factory=set)
    following: Set[str] = Field(default_factory=set)


class Selection(BaseModel):
    resources: FrozenSet[str] = frozenset()
    edges: FrozenSet[str] = frozenset()
    issues: FrozenSet[str] = frozenset()

    model_config = ConfigDict(frozen=True)

    def is_empty(self) -> bool:
        return not (self.resources or self.edges or self.issues)


class Measurement(BaseModel):
    width: float
    height: float


class Viewport(BaseModel):
    x: float = 0.0
    y: float = 0.0
    zoom: float = 1.0
    duration: Optional[int] = None


class ViewSize(BaseModel):
    width: float
    height: float


class QueryData(BaseModel):
    """
    The aggregate rendered by the host.

    Created once per (dataset, date filter) by the initializer and replaced
    only through the reducer. Handlers return new aggregates via
    `model_copy(update=...)`, reusing untouched members by reference.
    """
    section: MenuSection
    original_data: QueryResponse
    date_filter: DateFilter
    view_size: ViewSize

    resources: List[Resource] = Field(default_factory=list)
    events: List[ResourceEvent] = Field(default_factory=list)
    global_containers: List[GlobalContainer] = Field(default_factory=list)
    environments: List[str] = Field(default_factory=list)
    resources_environments: Dict[str, ResourceEnvironments] = Field(default_factory=dict)
    resource_events: List[ResourceEvent] = Field(default_factory=list)
    event_chain_links: Dict[str, Links] = Field(default_factory=dict)

    nodes: Dict[str, Node] = Field(default_factory=dict)
    edges: Dict[str, Edge] = Field(default_factory=dict)
    measurements: Dict[str, Measurement] = Field(default_factory=dict)
    viewport: Viewport = Field(default_factory=Viewport)
    fit_view_after_layout: bool = False
    laid_out: LayoutState = LayoutState.INITIAL

    selection: Selection = Field(default_factory=Selection)
    issues: Optional[Dict[str, Issue]] = None
