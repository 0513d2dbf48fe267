"""Error types shared by the intake, policy and report packages."""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence


class IntakeError(Exception):
    """Base exception for model intake failures."""

    def __init__(self, code: str, message: str, details: Optional[Dict[str, Any]] = None):
        self.code = code
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        return {"code": self.code, "message": self.message, "details": self.details}


class ConfigError(IntakeError, ValueError):
    """Configuration could not be read or parsed."""

    def __init__(self, message: str = "Configuration error", details: Optional[Dict[str, Any]] = None):
        super().__init__("CONFIG_ERROR", message, details)


class ConfigValidationError(IntakeError, ValueError):
    """Configuration was read but failed validation."""

    def __init__(self, errors: Sequence[str], source: Optional[str] = None):
        self.errors: List[str] = list(errors)
        details: Dict[str, Any] = {"errors": self.errors}
        if source:
            details["source"] = source
        message = f"Invalid configuration ({len(self.errors)} error(s))"
        if source:
            message += f" in {source}"
        super().__init__("CONFIG_VALIDATION_ERROR", message, details)


class RecordError(IntakeError, ValueError):
    """Use case input could not be mapped into a record."""

    def __init__(self, message: str = "Invalid use case record", details: Optional[Dict[str, Any]] = None):
        super().__init__("RECORD_ERROR", message, details)
