from __future__ import annotations

"""Named-schema validation backed by pydantic.

``SchemaValidator`` keeps a catalogue of schemas (pydantic models or any type a
``TypeAdapter`` accepts) under string names such as ``decision.reasoning``. It
is used for tool inputs/outputs and for decision provider payloads.

Failures are reported as ``SchemaValidationError`` with field-level
violations and announced on the event bus as ``validationFailed``.
"""

import logging
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, TypeAdapter, ValidationError

from ..errors import FieldViolation, SchemaNotFoundError, SchemaValidationError
from ..events import EventBus, EventKind

logger = logging.getLogger(__name__)


def _violations(exc: ValidationError) -> List[FieldViolation]:
    out: List[FieldViolation] = []
    for err in exc.errors():
        loc = ".".join(str(p) for p in err.get("loc", ())) or "<root>"
        out.append(FieldViolation(loc=loc, message=str(err.get("msg", "")), type=str(err.get("type", ""))))
    return out


def _plain(payload: Any) -> Any:
    if isinstance(payload, BaseModel):
        return payload.model_dump()
    return payload


class SchemaValidator:
    """
    Registry of named schemas plus validation entry points.

    Notes:
        - ``register`` overwrites an existing schema of the same name and logs a warning.
        - ``validate`` raises ``SchemaNotFoundError`` for unknown names (configuration error).
    """

    def __init__(self, event_bus: Optional[EventBus] = None) -> None:
        self._bus = event_bus
        self._schemas: Dict[str, Any] = {}
        self._adapters: Dict[str, TypeAdapter] = {}

    def register(self, name: str, schema: Any) -> None:
        """
        Register ``schema`` under ``name``.

        Args:
            name: Unique schema name.
            schema: A pydantic model class or any type accepted by ``TypeAdapter``.
        """
        if name in self._schemas:
            logger.warning(f"Schema '{name}' already registered. Overwriting.")
        self._schemas[name] = schema
        self._adapters[name] = TypeAdapter(schema)

    def has(self, name: str) -> bool:
        return name in self._schemas

    def names(self) -> List[str]:
        return sorted(self._schemas)

    def get(self, name: str) -> Any:
        try:
            return self._schemas[name]
        except KeyError:
            raise SchemaNotFoundError(name) from None

    def validate(
        self,
        name: str,
        payload: Any,
        *,
        conversation_id: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> Any:
        """
        Validate ``payload`` against the schema registered as ``name``.

        Returns:
            The validated value (a model instance for model schemas).

        Raises:
            SchemaNotFoundError: ``name`` is not registered.
            SchemaValidationError: the payload does not satisfy the schema.
        """
        adapter = self._adapters.get(name)
        if adapter is None:
            logger.error(f"Config error: schema '{name}' not found in validator registry")
            raise SchemaNotFoundError(name)
        return self._run(adapter, name, payload, conversation_id=conversation_id, trace_id=trace_id)

    def validate_with(
        self,
        schema: Any,
        payload: Any,
        *,
        schema_name: str,
        conversation_id: Optional[str] = None,
        trace_id: Optional[str] = None,
    ) -> Any:
        """Validate ``payload`` against an unregistered ``schema`` (e.g. a tool input model)."""
        return self._run(
            TypeAdapter(schema), schema_name, payload, conversation_id=conversation_id, trace_id=trace_id
        )

    async def avalidate(self, name: str, payload: Any, **context: Any) -> Any:
        """Awaitable form of ``validate``."""
        return self.validate(name, payload, **context)

    def _run(
        self,
        adapter: TypeAdapter,
        name: str,
        payload: Any,
        *,
        conversation_id: Optional[str],
        trace_id: Optional[str],
    ) -> Any:
        try:
            return adapter.validate_python(_plain(payload))
        except ValidationError as exc:
            violations = _violations(exc)
            logger.debug(f"Validation failed for '{name}': {[v.to_dict() for v in violations]}")
            if self._bus is not None:
                self._bus.emit(
                    EventKind.validation_failed,
                    conversation_id=conversation_id,
                    trace_id=trace_id,
                    error=f"Validation failed for '{name}'",
                    data={"schema_name": name, "violations": [v.to_dict() for v in violations]},
                )
            raise SchemaValidationError(name, violations) from exc
