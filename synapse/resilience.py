"""Resilient provider calls: per-attempt timeout, bounded retries, exponential backoff."""

import asyncio
import logging
import time
from dataclasses import dataclass

from synapse.models import CallOutcome, ErrorKind
from synapse.providers.base import AIProvider, ProviderError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CallBudget:
    timeout_sec: float
    max_retries: int = 2
    backoff_base_sec: float = 1.0

    def backoff(self, failed_attempts: int) -> float:
        """Delay before the next attempt: 2^n * base."""
        return (2 ** failed_attempts) * self.backoff_base_sec


async def resilient_call(
    provider: AIProvider,
    prompt: str,
    model: str,
    budget: CallBudget,
) -> CallOutcome:
    """Call a provider with timeout + retries.

    Never raises; every failure comes back as a CallOutcome with error_kind set.
    Unauthorized and malformed-response failures are not retried.
    """
    start = time.monotonic()
    name = provider.name()
    kind: ErrorKind = ErrorKind.NETWORK_ERROR
    message = ""
    attempts = 0

    for attempt in range(1, budget.max_retries + 2):
        attempts = attempt
        try:
            reply = await asyncio.wait_for(provider.invoke(prompt, model), timeout=budget.timeout_sec)
        except TimeoutError:
            kind, message = ErrorKind.TIMEOUT, f"Request timed out after {budget.timeout_sec}s"
        except ProviderError as exc:
            kind, message = exc.kind, str(exc)
        except Exception as exc:
            kind, message = ErrorKind.NETWORK_ERROR, f"Unexpected error: {exc}"
        else:
            if reply.text:
                return CallOutcome(
                    provider=name,
                    model=model,
                    text=reply.text,
                    latency_ms=int((time.monotonic() - start) * 1000),
                    attempts=attempts,
                    usage=reply.usage,
                )
            kind, message = ErrorKind.MALFORMED_RESPONSE, "Empty response text"

        if not kind.retryable:
            logger.warning("Provider %s failed (%s), not retrying: %s", name, kind.value, message)
            break
        if attempt > budget.max_retries:
            break

        delay = budget.backoff(attempt)
        logger.warning(
            "Provider %s attempt %d/%d failed (%s), retrying in %.1fs",
            name, attempt, budget.max_retries + 1, kind.value, delay,
        )
        await asyncio.sleep(delay)

    logger.warning("Provider %s gave up after %d attempt(s): %s", name, attempts, message)
    return CallOutcome(
        provider=name,
        model=model,
        latency_ms=int((time.monotonic() - start) * 1000),
        attempts=attempts,
        error_kind=kind,
        error=message,
    )
