"""Sonarr MCP - TV series management for LLM agents.

Exposes a Sonarr v3 instance through:
- Tools (add/list/update/remove series, episodes, queue, history, wanted)
- Resources (read-only JSON snapshots under sonarr://)
"""

__version__ = "1.0.0"
