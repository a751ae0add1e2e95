"""Tool definition model.

A tool is a named, schema-described unit of capability invoked by the Action
phase through the ``ToolExecutor``. Names are dot-namespaced
(``filesystem.getFileContents``) and unique within a ``ToolRegistry``.
"""

from typing import Any, Awaitable, Callable, Dict, Optional, Tuple, Type

from pydantic import BaseModel, ConfigDict, Field

ToolHandlerFn = Callable[[Any], Awaitable[Any]]


class ToolDefinition(BaseModel):
    """Pydantic model for tool definitions.

    ``handler`` is an async callable that receives the validated instance of
    ``input_schema``. When ``output_schema`` is set the executor validates the
    handler's return value against it. ``required_permissions`` are checked
    by the executor's ``PermissionPolicy`` before the handler is called.
    """

    name: str = Field(..., description="Dot-namespaced unique identifier for the tool")
    description: str = Field(..., description="Human-readable description of what the tool does")
    input_schema: Type[BaseModel] = Field(..., description="Pydantic model class for input validation")
    output_schema: Optional[Type[BaseModel]] = Field(
        default=None, description="Pydantic model class the tool's result must satisfy"
    )
    handler: ToolHandlerFn = Field(..., description="Async handler function that executes the tool")
    required_permissions: Tuple[str, ...] = Field(
        default=(), description="Permissions the caller must be granted before the handler runs"
    )

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    @property
    def namespace(self) -> str:
        return self.name.split(".", 1)[0]

    def to_dict(self) -> Dict[str, Any]:
        """Convert tool definition to dictionary format.

        Returns:
            Dictionary representation of tool definition with JSON schemas
        """
        out: Dict[str, Any] = {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema.model_json_schema(),
        }
        if self.required_permissions:
            out["required_permissions"] = list(self.required_permissions)
        if self.output_schema is not None:
            out["output_schema"] = self.output_schema.model_json_schema()
        return out

    def parameter_summary(self) -> str:
        """One-line ``name: type (required)`` summary of the input parameters."""
        schema = self.input_schema.model_json_schema()
        required = set(schema.get("required", []))
        parts = []
        for pname, prop in schema.get("properties", {}).items():
            ptype = prop.get("type") or "any"
            flag = "required" if pname in required else "optional"
            parts.append(f"{pname}: {ptype} ({flag})")
        return ", ".join(parts) or "no parameters"
