"""Tool and resource registries.

A Registry is built once at startup (see catalog.build_registry) and only
read afterwards. Lookups of unknown names raise; they mean the caller is
wired wrong, not that Sonarr misbehaved.
"""

import json
import logging
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Awaitable, Callable, Dict, Iterable, List, Mapping, Optional, Type

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

logger = logging.getLogger(__name__)

JSON_MIME_TYPE = "application/json"


class ToolNotFoundError(LookupError):
    pass


class ResourceNotFoundError(LookupError):
    pass


class ResourceReadError(Exception):
    """A resource could not fetch its data from Sonarr."""
    pass


class ToolInput(BaseModel):
    """Base for tool arguments: snake_case in Python, camelCase for callers."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")


class ToolResult(BaseModel):
    """Outcome of a tool call: a text summary plus an optional JSON payload."""
    content: List[Dict[str, Any]]
    is_error: bool = Field(default=False, serialization_alias="isError")

    @classmethod
    def ok(cls, text: str, data: Any = None) -> "ToolResult":
        content = [{"type": "text", "text": text}]
        if data is not None:
            content.append({"type": "json", "json": data})
        return cls(content=content)

    @classmethod
    def error(cls, text: str) -> "ToolResult":
        return cls(content=[{"type": "text", "text": text}], is_error=True)

    @property
    def text(self) -> str:
        return "\n".join(c["text"] for c in self.content if c.get("type") == "text")

    @property
    def data(self) -> Any:
        for c in self.content:
            if c.get("type") == "json":
                return c["json"]
        return None

    def render(self) -> str:
        """Summary followed by the pretty-printed payload, for text-only transports."""
        if self.data is None:
            return self.text
        return f"{self.text}\n\n{json.dumps(self.data, indent=2, default=str)}"

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True)


class ResourceResult(BaseModel):
    contents: List[Dict[str, str]]

    @property
    def text(self) -> str:
        return self.contents[0]["text"]


def _format_validation(error: ValidationError) -> str:
    issues = []
    for err in error.errors():
        field = ".".join(str(part) for part in err["loc"]) or "arguments"
        issues.append(f"{field}: {err['msg']}")
    return "; ".join(issues)


@dataclass(frozen=True)
class Tool:
    """A named operation with validated input.

    `action` completes the sentence "Failed to ..." when the handler raises.
    """
    name: str
    description: str
    input_model: Type[ToolInput]
    handler: Callable[[Any], Awaitable[ToolResult]]
    action: str

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema(by_alias=True)

    async def execute(self, args: Optional[Mapping[str, Any]] = None) -> ToolResult:
        if args is None:
            args = {}
        if not isinstance(args, Mapping):
            return ToolResult.error(f"Invalid arguments for {self.name}: arguments must be an object")

        try:
            params = self.input_model.model_validate(dict(args))
        except ValidationError as e:
            return ToolResult.error(f"Invalid arguments for {self.name}: {_format_validation(e)}")

        try:
            return await self.handler(params)
        except Exception as e:
            logger.error(f"Tool {self.name} failed: {e}")
            return ToolResult.error(f"Failed to {self.action}: {e}")


@dataclass(frozen=True)
class Resource:
    """A read-only JSON snapshot, refetched on every read."""
    uri: str
    name: str
    description: str
    label: str
    reader: Callable[[], Awaitable[Any]]
    mime_type: str = JSON_MIME_TYPE

    async def read(self) -> ResourceResult:
        try:
            data = await self.reader()
        except Exception as e:
            raise ResourceReadError(f"Failed to read {self.label}: {e}") from e

        return ResourceResult(contents=[{
            "uri": self.uri,
            "mimeType": self.mime_type,
            "text": json.dumps(data, indent=2, default=str),
        }])


class Registry:
    """Immutable name -> tool and uri -> resource lookup tables."""

    def __init__(self, tools: Iterable[Tool], resources: Iterable[Resource]):
        self._tools = MappingProxyType(_index(tools, lambda t: t.name, "tool"))
        self._resources = MappingProxyType(_index(resources, lambda r: r.uri, "resource"))

    @property
    def tools(self) -> Mapping[str, Tool]:
        return self._tools

    @property
    def resources(self) -> Mapping[str, Resource]:
        return self._resources

    def get_tool(self, name: str) -> Tool:
        try:
            return self._tools[name]
        except KeyError:
            raise ToolNotFoundError(f"Tool not found: {name}") from None

    def get_resource(self, uri: str) -> Resource:
        try:
            return self._resources[uri]
        except KeyError:
            raise ResourceNotFoundError(f"Resource not found: {uri}") from None

    async def execute_tool(self, name: str, args: Optional[Mapping[str, Any]] = None) -> ToolResult:
        tool = self.get_tool(name)
        logger.info(f"Executing tool: {name}")
        result = await tool.execute(args)
        logger.info(f"Tool execution completed: {name} (error={result.is_error})")
        return result

    async def read_resource(self, uri: str) -> ResourceResult:
        resource = self.get_resource(uri)
        logger.info(f"Reading resource: {uri}")
        return await resource.read()

    def list_tools(self) -> List[Dict[str, Any]]:
        return [
            {"name": t.name, "description": t.description, "inputSchema": t.input_schema}
            for t in self._tools.values()
        ]

    def list_resources(self) -> List[Dict[str, str]]:
        return [
            {"uri": r.uri, "name": r.name, "description": r.description, "mimeType": r.mime_type}
            for r in self._resources.values()
        ]


def _index(items, key, kind: str) -> Dict[str, Any]:
    table: Dict[str, Any] = {}
    for item in items:
        k = key(item)
        if k in table:
            raise ValueError(f"Duplicate {kind}: {k}")
        table[k] = item
    return table
