"""Builds the tool and resource registry for one client."""

from typing import Optional

from .client import SonarrClient
from .config import FeatureConfig
from .registry import Registry
from .resources import get_resources
from .tools import get_tools


def build_registry(client: SonarrClient, features: Optional[FeatureConfig] = None) -> Registry:
    """Bind every tool and resource to `client`. The result is read-only."""
    return Registry(get_tools(client, features), get_resources(client))
