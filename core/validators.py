"""
Core Validators

Shared validation functions for all modules.
"""

from typing import Optional, Any

from .errors import ValidationError, PayloadTooLargeError


def byte_size(text: str) -> int:
    """UTF-8 encoded size of text in bytes."""
    return len(text.encode("utf-8"))


def validate_required_field(
    value: Optional[Any],
    field_name: str,
    module_name: str = "Module"
) -> None:
    """
    Validate that a required field is not empty.

    Args:
        value: Value to validate
        field_name: Name of the field for error messages
        module_name: Name of the module for error messages

    Raises:
        ValidationError: If value is None or empty
    """
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationError(
            f"{module_name}: {field_name} is required and cannot be empty."
        )


def validate_byte_size(
    text: str,
    max_bytes: int,
    module_name: str = "Module"
) -> int:
    """
    Validate that the UTF-8 size of text doesn't exceed max_bytes.

    Args:
        text: Text to validate
        max_bytes: Maximum allowed size in bytes
        module_name: Name of the module for error messages

    Returns:
        The measured size in bytes

    Raises:
        PayloadTooLargeError: If the text is too large
    """
    size = byte_size(text)
    if size > max_bytes:
        raise PayloadTooLargeError(
            f"{module_name}: File size exceeds {max_bytes // 1024}KB limit "
            f"({size} bytes).",
            max_bytes=max_bytes,
            size_bytes=size
        )
    return size
