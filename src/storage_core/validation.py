"""
Runtime validation helpers for arguments and loaded settings.
"""

from dataclasses import dataclass
from typing import Any, Dict, Generic, List, Optional, Sequence, TypeVar

from .errors import ValidationError

T = TypeVar("T")


@dataclass
class ValidationResult(Generic[T]):
    """Outcome of validating data against a schema."""

    success: bool
    data: Optional[T] = None
    error: Optional[str] = None


def validate(data: Any, schema: Any) -> ValidationResult:
    """
    Validate data against any schema object exposing a ``parse`` callable.

    Args:
        data: Data to validate
        schema: Object whose ``parse(data)`` returns the validated value or raises

    Returns:
        ValidationResult with either the parsed data or the error text
    """
    try:
        return ValidationResult(success=True, data=schema.parse(data))
    except Exception as e:
        return ValidationResult(success=False, error=str(e))


def validate_string(value: Any, field_name: str = "value") -> str:
    if not isinstance(value, str):
        raise ValidationError(f"{field_name} must be a string")
    return value


def validate_number(value: Any, field_name: str = "value") -> float:
    # bool is an int subclass but never a meaningful number here
    if isinstance(value, bool) or not isinstance(value, (int, float)) or value != value:
        raise ValidationError(f"{field_name} must be a valid number")
    return value


def validate_integer(value: Any, field_name: str = "value", minimum: Optional[int] = None) -> int:
    """Validate an integer, optionally bounded below."""
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValidationError(f"{field_name} must be an integer")
    if minimum is not None and value < minimum:
        raise ValidationError(f"{field_name} must be at least {minimum}. Got: {value}")
    return value


def validate_boolean(value: Any, field_name: str = "value") -> bool:
    if not isinstance(value, bool):
        raise ValidationError(f"{field_name} must be a boolean")
    return value


def validate_array(value: Any, field_name: str = "value") -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise ValidationError(f"{field_name} must be an array")
    return list(value)


def validate_object(value: Any, field_name: str = "value") -> Dict[str, Any]:
    if not isinstance(value, dict):
        raise ValidationError(f"{field_name} must be an object")
    return value


def validate_non_empty_string(value: Any, field_name: str = "value") -> str:
    text = validate_string(value, field_name)
    if not text.strip():
        raise ValidationError(f"{field_name} must not be empty")
    return text


def validate_enum(value: Any, allowed_values: Sequence[T], field_name: str = "value") -> T:
    if value not in allowed_values:
        allowed = ", ".join(str(v) for v in allowed_values)
        raise ValidationError(f"{field_name} must be one of: {allowed}. Got: {value}")
    return value
