"""
Action payloads accepted by the reducer.

Each action is a pydantic model tagged by its `action` literal, so payloads
arriving as JSON can be parsed with `parse_action`.
"""

from typing import Annotated, Callable, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter

from ..config import FIT_VIEW_DURATION
from ..core.date_filter import DateFilter
from ..core.types import Edge, Measurement, Node, QueryData, ResourceIdPart

Callback = Callable[[Optional[str]], None]


class _Action(BaseModel):
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)


class InitialRenderCompleted(_Action):
    action: Literal["InitialRenderCompleted"] = "InitialRenderCompleted"


class UpdateMeasurements(_Action):
    action: Literal["UpdateMeasurements"] = "UpdateMeasurements"
    measurements: Dict[str, Measurement]


class UpdateLayout(_Action):
    action: Literal["UpdateLayout"] = "UpdateLayout"
    nodes: Dict[str, Node]
    edges: Dict[str, Edge]


class SetDateFilter(_Action):
    action: Literal["SetDateFilter"] = "SetDateFilter"
    date_filter: DateFilter


class ToggleNodeCollapsed(_Action):
    action: Literal["ToggleNodeCollapsed"] = "ToggleNodeCollapsed"
    node_id: str


class FitView(_Action):
    action: Literal["FitView"] = "FitView"
    fit_to_selection: bool = False
    duration: Optional[int] = FIT_VIEW_DURATION


class ExpandAll(_Action):
    action: Literal["ExpandAll"] = "ExpandAll"


class CollapseAll(_Action):
    action: Literal["CollapseAll"] = "CollapseAll"


class SelectResource(_Action):
    action: Literal["SelectResource"] = "SelectResource"
    resource_id: str
    refit_view: bool = True
    select_edges: bool = True


class DeselectResource(_Action):
    action: Literal["DeselectResource"] = "DeselectResource"
    resource_id: str


class SelectEdge(_Action):
    action: Literal["SelectEdge"] = "SelectEdge"
    edge_id: str
    refit_view: bool = True


class DeselectEdge(_Action):
    action: Literal["DeselectEdge"] = "DeselectEdge"
    edge_id: str


class SelectIssue(_Action):
    action: Literal["SelectIssue"] = "SelectIssue"
    issue_id: str
    refit_view: bool = True


class DeselectIssue(_Action):
    action: Literal["DeselectIssue"] = "DeselectIssue"
    issue_id: str


class ClearSelection(_Action):
    action: Literal["ClearSelection"] = "ClearSelection"


class TagEnvironment(_Action):
    action: Literal["TagEnvironment"] = "TagEnvironment"
    resource_id: List[ResourceIdPart]
    environment: str
    callback: Optional[Callback] = Field(default=None, exclude=True)


class UntagEnvironment(_Action):
    action: Literal["UntagEnvironment"] = "UntagEnvironment"
    resource_id: List[ResourceIdPart]
    environment: str
    callback: Optional[Callback] = Field(default=None, exclude=True)


class Reinitialize(_Action):
    action: Literal["Reinitialize"] = "Reinitialize"
    state: QueryData


Action = Annotated[
    Union[
        InitialRenderCompleted,
        UpdateMeasurements,
        UpdateLayout,
        SetDateFilter,
        ToggleNodeCollapsed,
        FitView,
        ExpandAll,
        CollapseAll,
        SelectResource,
        DeselectResource,
        SelectEdge,
        DeselectEdge,
        SelectIssue,
        DeselectIssue,
        ClearSelection,
        TagEnvironment,
        UntagEnvironment,
        Reinitialize,
    ],
    Field(discriminator="action"),
]

_action_adapter: TypeAdapter = TypeAdapter(Action)


def parse_action(payload: dict) -> Action:
    """Validate a raw payload into the matching action model."""
    return _action_adapter.validate_python(payload)
