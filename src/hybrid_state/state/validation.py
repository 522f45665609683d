"""
Validation of primary/micro state pairs against a schema.

These checks do not depend on a transition attempt: stores run
``validate_entity`` on every persistence attempt, so a record whose fields
were assigned directly is held to the same rules as one moved through the
transition API.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from .schema import StateSchema
from .state_types import normalize_state


@dataclass
class StateValidation:
    """
    Result of validating a primary/micro state pair.

    :ivar primary: Validated primary state.
    :ivar micro: Validated micro state.
    :ivar errors: Field name -> error message, empty when valid.
    """
    primary: Optional[str]
    micro: Optional[str]
    errors: Dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return not self.errors

    def __bool__(self) -> bool:
        return self.valid

    def full_messages(self):
        return [f"{name} {message}" for name, message in self.errors.items()]


def is_valid_primary(schema: StateSchema, state: Any) -> bool:
    """Check if ``state`` is a declared primary state."""
    return schema.valid_primary(state)


def is_valid_micro(schema: StateSchema, micro: Any, primary: Any) -> bool:
    """Check if ``micro`` is allowed while ``primary`` is active."""
    return schema.valid_micro(micro, primary)


def validate_states(schema: StateSchema, primary: Any, micro: Any) -> StateValidation:
    """
    Validate a primary/micro state pair.

    Args:
        schema: The schema to validate against.
        primary: Current primary state.
        micro: Current micro state, may be None.

    Returns:
        StateValidation with one error entry per invalid field.
    """
    primary = normalize_state(primary)
    micro = normalize_state(micro)
    result = StateValidation(primary=primary, micro=micro)

    if not schema.valid_primary(primary):
        result.errors[schema.primary_field] = "is not a valid primary state"

    if not schema.valid_micro(micro, primary):
        result.errors[schema.micro_field] = f"is not valid for primary state {primary}"

    return result


def validate_entity(schema: StateSchema, entity: Any) -> StateValidation:
    """Validate the current state fields of an entity."""
    return validate_states(
        schema,
        entity.read_state(schema.primary_field),
        entity.read_state(schema.micro_field),
    )
