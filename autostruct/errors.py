"""Error types for autostruct."""

from dataclasses import dataclass
from typing import Optional, Dict, Any, List


class AutostructError(Exception):
    """Base exception for fatal autostruct errors."""

    def __init__(self, message: str, code: str = "AUTOSTRUCT_ERROR", details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to a dictionary for reporting."""
        return {
            "code": self.code,
            "message": self.message,
            "details": self.details,
        }


class ConfigurationError(AutostructError):
    """Invalid or missing configuration."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class ConnectionFailure(AutostructError):
    """Error connecting to the database, including connect timeouts."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message, code="CONNECTION_FAILURE", details=details)


class IntrospectionFailure(AutostructError):
    """A catalog metadata query failed."""

    def __init__(self, message: str, query: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        if query:
            error_details["query"] = query
        super().__init__(message, code="INTROSPECTION_FAILURE", details=error_details)
        self.query = query


class NameCollisionError(AutostructError):
    """Two source names resolve to the same Rust identifier."""

    def __init__(self, identifier: str, first: str, second: str, scope: str = "module"):
        super().__init__(
            f"'{first}' and '{second}' both resolve to the {scope} identifier '{identifier}'",
            code="NAME_COLLISION",
            details={"identifier": identifier, "sources": [first, second], "scope": scope},
        )
        self.identifier = identifier
        self.sources = (first, second)


class CatalogCycleError(AutostructError):
    """A domain or composite type transitively references itself."""

    def __init__(self, cycle: List[str]):
        super().__init__(
            "Catalog type cycle detected: " + " -> ".join(cycle),
            code="CATALOG_CYCLE",
            details={"cycle": list(cycle)},
        )
        self.cycle = list(cycle)


class WriteFailure(AutostructError):
    """Generated output could not be written or published."""

    def __init__(self, message: str, path: Optional[str] = None, details: Optional[Dict[str, Any]] = None):
        error_details = details or {}
        if path:
            error_details["path"] = path
        super().__init__(message, code="WRITE_FAILURE", details=error_details)
        self.path = path


@dataclass(frozen=True)
class UnsupportedTypeWarning:
    """Non-fatal record of a type that fell back to the opaque mapping.

    One record is produced per occurrence, so a type used by three columns
    yields three warnings.
    """

    location: str  # table.column or type.field
    raw_type: str
    reason: str

    @property
    def message(self) -> str:
        return f"{self.location}: unsupported type '{self.raw_type}' mapped to String ({self.reason})"

    def to_dict(self) -> Dict[str, Any]:
        return {
            "location": self.location,
            "raw_type": self.raw_type,
            "reason": self.reason,
        }
