"""Request-level failures. Everything below the request boundary is data, not exceptions."""


class OrchestrationError(Exception):
    """Base for the failures surfaced to callers of Orchestrator.orchestrate."""

    code = "orchestration_error"


class InputError(OrchestrationError):
    """Query missing, too short or too long. Raised before any provider call."""

    code = "input_error"


class ConfigError(OrchestrationError):
    """No provider has credentials; there is nothing to orchestrate."""

    code = "config_error"


class TotalFailureError(OrchestrationError):
    """No provider produced a usable final answer."""

    code = "total_failure"
