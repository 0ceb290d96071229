"""Sonarr MCP tools, grouped by area."""

from typing import List, Optional

from ..client import SonarrClient
from ..config import FeatureConfig
from ..registry import Tool
from . import activity, episodes, series, system

TOOL_MODULES = (series, episodes, activity, system)


def get_tools(client: SonarrClient, features: Optional[FeatureConfig] = None) -> List[Tool]:
    """All tools bound to `client`, in catalog order."""
    tools: List[Tool] = []
    for module in TOOL_MODULES:
        tools.extend(module.get_tools(client, features))
    return tools
