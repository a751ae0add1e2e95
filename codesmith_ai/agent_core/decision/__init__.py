"""Decision providers: the capability that turns agent state into the next step."""

from .provider import (
    DECISION_SCHEMAS,
    DecisionPayload,
    DecisionProvider,
    decision_schema_name,
    register_decision_schemas,
)
from .pydantic_ai_provider import PydanticAIDecisionProvider

__all__ = [
    "DECISION_SCHEMAS",
    "DecisionPayload",
    "DecisionProvider",
    "PydanticAIDecisionProvider",
    "decision_schema_name",
    "register_decision_schemas",
]
