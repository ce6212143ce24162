"""
Error taxonomy for the Operator core.

Nothing raised here is allowed to abort a running night. Configuration
errors are caught at the evaluation seam, logged and degraded to a safe
default. The only exception that escapes the core is ScenarioLoadError,
which happens before the simulation starts.
"""


class OperatorCoreError(Exception):
    """Base class for all Operator core errors."""
    pass


class ConfigurationError(OperatorCoreError):
    """Raised when authored content reaches a case the core cannot evaluate."""
    pass


class ScenarioLoadError(OperatorCoreError):
    """Raised when a scenario asset cannot be parsed or validated."""
    pass
