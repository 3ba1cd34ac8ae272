"""Fatal error hierarchy raised by the asset generation pipeline."""

from __future__ import annotations


class PipelineError(RuntimeError):
    """Base class for errors that abort asset generation."""


class AddressError(PipelineError):
    """Raised when a resource address cannot be parsed or normalized."""


class PlanStructureError(PipelineError):
    """Raised when the planned-change document violates its expected shape."""


class ConfigurationError(PipelineError):
    """Raised when the configuration tree is missing or reports errors."""


class ModuleCycleError(PipelineError):
    """Raised when module calls reference each other cyclically."""


class ReconciliationError(PipelineError):
    """Raised when plan and configuration cannot be joined consistently."""


__all__ = [
    "AddressError",
    "ConfigurationError",
    "ModuleCycleError",
    "PipelineError",
    "PlanStructureError",
    "ReconciliationError",
]
