"""Provider health checks: one ping per provider before orchestrating."""

import asyncio

from synapse.providers.base import AIProvider
from synapse.resilience import CallBudget, resilient_call

_PING_PROMPT = "Reply with the word OK only."
_TIMEOUT_SEC = 15.0


async def run_health_checks(
    providers: dict[str, AIProvider],
) -> dict[str, tuple[bool, str]]:
    """Ping all providers in parallel, one attempt each.

    Returns:
        Dict mapping provider name -> (ok, error_message).
        error_message is "" when ok is True, otherwise it starts with the
        ErrorKind value, e.g. "unauthorized: ...".
    """
    budget = CallBudget(timeout_sec=_TIMEOUT_SEC, max_retries=0)
    names = list(providers)
    outcomes = await asyncio.gather(
        *(resilient_call(p, _PING_PROMPT, p.model_string(), budget) for p in providers.values())
    )
    return {
        name: (True, "") if outcome.ok else (False, f"{outcome.error_kind.value}: {outcome.error}")
        for name, outcome in zip(names, outcomes)
    }
