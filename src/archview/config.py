"""
Global Configuration and Defaults.

This module centralizes the layout geometry, viewport limits and domain
constants shared by the engine, plus the user-level Settings loaded from
`.archview/config.yaml` with environment variable overrides.
"""

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field

from .core.errors import ArchviewError

logger = logging.getLogger(__name__)

# --- Layout Geometry ---
# Height reserved for a container's title bar
TITLE_HEIGHT = 46
CONTAINER_PADDING = 20
# Environment and issue badges sit above nodes; ports start below them
ISSUE_BADGE_SIZE = 26
EDGE_EDGE_SPACING = 20
# Subtracted from the widest edge label to get the spacing between layers
LAYER_SPACING_LABEL_OFFSET = 20
NODE_NODE_SPACING = 20

# --- Viewport ---
FIT_VIEW_PADDING = 20
MIN_ZOOM = 0.1
MAX_ZOOM = 1.0
FIT_VIEW_DURATION = 500  # milliseconds

# --- Environments ---
ENVIRONMENT_COLOR_COUNT = 16

# --- Edges ---
MULTIPLE_EVENTS_LABEL = "(Multiple)"

# --- Domain Types ---
SECRET_HELD_EVENT_TYPE = "Held"
SECRET_HARDCODED_EVENT_TYPE = "Hardcoded"
SECRET_VALUE_RESOURCE_TYPE = "Secret Value"
BLOB_RESOURCE_TYPE = "Blob"
KUBERNETES_CLUSTER_RESOURCE_TYPE = "Kubernetes Cluster"

# --- Estimated Measurement ---
# Used when no render surface reports real sizes (CLI, tests)
LABEL_CHAR_WIDTH = 7.0
LABEL_PADDING = 16.0
NODE_MIN_WIDTH = 120.0
NODE_CHAR_WIDTH = 9.0
NODE_HEIGHT = 60.0

# --- Date Filter ---
DEFAULT_DATE_PRESET = "last30days"

CONFIG_PATH = Path(".archview/config.yaml")


class Settings(BaseModel):
    """User-level settings for the API client and CLI."""
    api_endpoint: str = "http://localhost:5732"
    account_id: Optional[str] = None
    api_timeout: float = 10.0
    playground: bool = False
    view_width: float = 1600.0
    view_height: float = 900.0
    section: str = "secrets"
    extra: Dict[str, Any] = Field(default_factory=dict)


def _truthy(value: str) -> bool:
    return value.strip().lower() in ("1", "true", "yes", "on")


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from YAML, then apply environment overrides.

    Args:
        path (Optional[Path]): Config file path. Defaults to .archview/config.yaml.

    Returns:
        Settings: The merged settings.

    Raises:
        ArchviewError: If the config file exists but is not valid YAML.
    """
    config_path = path or CONFIG_PATH
    values: Dict[str, Any] = {}

    if config_path.exists():
        try:
            with open(config_path, "r") as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ArchviewError(f"Invalid config file {config_path}: {e}") from e

        if not isinstance(data, dict):
            raise ArchviewError(f"Invalid config file {config_path}: expected a mapping")

        api = data.pop("api", {}) or {}
        view = data.pop("view", {}) or {}

        if "endpoint" in api:
            values["api_endpoint"] = api["endpoint"]
        if "account_id" in api:
            values["account_id"] = str(api["account_id"])
        if "timeout" in api:
            values["api_timeout"] = float(api["timeout"])
        if "playground" in data:
            values["playground"] = bool(data.pop("playground"))
        if "width" in view:
            values["view_width"] = float(view["width"])
        if "height" in view:
            values["view_height"] = float(view["height"])
        if "section" in view:
            values["section"] = str(view["section"])

        if data:
            logger.warning(f"Ignoring unknown config keys: {', '.join(sorted(data))}")
            values["extra"] = data

    # Environment variables win over the file
    if os.getenv("ARCHVIEW_API_ENDPOINT"):
        values["api_endpoint"] = os.environ["ARCHVIEW_API_ENDPOINT"]
    if os.getenv("ARCHVIEW_ACCOUNT_ID"):
        values["account_id"] = os.environ["ARCHVIEW_ACCOUNT_ID"]
    if os.getenv("ARCHVIEW_API_TIMEOUT"):
        values["api_timeout"] = float(os.environ["ARCHVIEW_API_TIMEOUT"])
    if os.getenv("ARCHVIEW_PLAYGROUND"):
        values["playground"] = _truthy(os.environ["ARCHVIEW_PLAYGROUND"])

    return Settings(**values)
