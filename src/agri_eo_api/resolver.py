"""Fallback chain resolution over ordered upstream adapters."""

import asyncio
import logging
import time
from collections.abc import Sequence

from agri_eo_api.sources.base import Empty, Failure, FailureReason, SourceAdapter, SourceQuery, SourceResult, Success

logger = logging.getLogger(__name__)


def _adapter_deadline(adapter: SourceAdapter, query: SourceQuery, remaining: float | None) -> float:
    deadline = min(adapter.timeout_seconds, query.deadline_ms / 1000.0)
    if remaining is not None:
        deadline = min(deadline, remaining)
    return max(deadline, 0.0)


async def run_adapter(adapter: SourceAdapter, query: SourceQuery, deadline: float) -> SourceResult:
    """Run one adapter under a hard deadline; never raises."""

    try:
        return await asyncio.wait_for(adapter.fetch(query), timeout=deadline)
    except asyncio.TimeoutError:
        logger.warning("%s: no answer within %.1fs", adapter.source_id, deadline)
        return Failure(reason=FailureReason.TIMEOUT, source_id=adapter.source_id, detail=f"deadline {deadline}s")
    except Exception as exc:
        logger.warning("%s: raised %s: %s", adapter.source_id, type(exc).__name__, exc)
        return Failure(reason=FailureReason.ERROR, source_id=adapter.source_id, detail=str(exc))


async def resolve(
    chain: Sequence[SourceAdapter],
    query: SourceQuery,
    *,
    overall_deadline_seconds: float | None = None,
) -> SourceResult:
    """Try each adapter in order and return the first non-empty success.

    Empty and failed results both advance the chain. With no overall deadline
    the worst case is the sum of the per-adapter deadlines; with one, each
    adapter only gets what is left of the budget.
    """
    started = time.monotonic()

    for position, adapter in enumerate(chain, start=1):
        remaining = None
        if overall_deadline_seconds is not None:
            remaining = overall_deadline_seconds - (time.monotonic() - started)
            if remaining <= 0:
                logger.warning(
                    "Overall deadline of %.1fs spent; skipping %d remaining source(s)",
                    overall_deadline_seconds,
                    len(chain) - position + 1,
                )
                break

        result = await run_adapter(adapter, query, _adapter_deadline(adapter, query, remaining))
        if isinstance(result, Success) and result.payload:
            logger.info("Source %d/%d (%s) answered", position, len(chain), adapter.source_id)
            return result

        if isinstance(result, Failure):
            logger.info(
                "Source %d/%d (%s) failed (%s); advancing",
                position,
                len(chain),
                adapter.source_id,
                result.reason,
            )
        else:
            logger.info("Source %d/%d (%s) had no record; advancing", position, len(chain), adapter.source_id)

    return Empty()


async def probe_all(adapters: Sequence[SourceAdapter], query: SourceQuery) -> list[SourceResult]:
    """Run adapters concurrently and wait for all of them to settle.

    ``run_adapter`` never raises, so one failing adapter cannot cancel the others.
    """

    return list(
        await asyncio.gather(
            *(run_adapter(adapter, query, _adapter_deadline(adapter, query, None)) for adapter in adapters)
        )
    )
