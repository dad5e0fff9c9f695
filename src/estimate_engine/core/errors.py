"""
Exception types raised by the estimation engine.

Hard failures carry every offending field so callers can surface the full
list instead of fixing problems one at a time.
"""


class EstimateEngineError(Exception):
    """Base class for engine errors."""


class SettlementRulesError(EstimateEngineError, ValueError):
    """Raised when a resolved settlement rule set is invalid."""

    def __init__(self, errors: list[str]) -> None:
        self.errors = list(errors)
        detail = "\n".join(f"  - {e}" for e in self.errors)
        super().__init__(f"Invalid SettlementRules:\n{detail}")


class ExportValidationError(EstimateEngineError):
    """Raised when interchange data fails the pre-export validation gate."""

    def __init__(self, errors: list[dict[str, str]]) -> None:
        self.errors = list(errors)
        detail = "\n".join(f"  - {e['field']}: {e['message']}" for e in self.errors)
        super().__init__(
            f"ESX export blocked by {len(self.errors)} validation error(s):\n{detail}"
        )

    @property
    def fields(self) -> list[str]:
        """Fields that failed validation."""
        return [e["field"] for e in self.errors]


class CatalogUnavailableError(EstimateEngineError):
    """Raised by a catalog source when a lookup cannot be served right now."""
