from __future__ import annotations


class ConfigError(ValueError):
    """Invalid options or missing LLM binding. Raised before any LLM call."""


class BluebookifyError(RuntimeError):
    """Base class for failures of a correction run."""


class ResponseFormatError(BluebookifyError):
    """The LLM reply could not be turned into a clean list of corrections."""


class BatchIntegrityError(BluebookifyError):
    """A batch reply did not cover exactly the ids that were sent."""


class ReconciliationError(BluebookifyError):
    """Spans and corrections do not correspond one-to-one."""


__all__ = [
    "BatchIntegrityError",
    "BluebookifyError",
    "ConfigError",
    "ReconciliationError",
    "ResponseFormatError",
]
