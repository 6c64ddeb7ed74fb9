"""Running cost and telemetry totals for one orchestration run.

Generation metadata (cost, timing, web-search count) is only available some
time after a call returns, so each call starts a background lookup. Lookups
update the accumulator as they resolve; ``drain`` is the single join point
after which the totals are complete.
"""

import asyncio
import math
from collections.abc import Callable

import logfire

from openrouter_deep_research.models.chat import ChatResult, Citation, GenerationMetadata
from openrouter_deep_research.models.research import Resource, ResearchThread
from openrouter_deep_research.services.gateway import ChatGateway

MetadataCallback = Callable[[GenerationMetadata], None]


def _positive(value: float | None) -> float:
    if value is None or not math.isfinite(value) or value < 0:
        return 0.0
    return float(value)


async def lookup_generation_metadata(
    gateway: ChatGateway, request_id: str, delay_seconds: float = 1.0
) -> GenerationMetadata | None:
    """Fetch metadata for ``request_id`` after ``delay_seconds``; None on any failure.

    The metadata record may not exist immediately after the call returns, hence
    the delay.
    """
    if delay_seconds > 0:
        await asyncio.sleep(delay_seconds)
    try:
        return await gateway.fetch_generation_metadata(request_id)
    except Exception as e:
        logfire.warning(
            "Generation metadata lookup failed", request_id=request_id, error=str(e)
        )
        return None


class ResultAccumulator:
    """Totals, collected resources and outstanding metadata lookups.

    All mutation happens on the event loop thread (stage bodies and lookup
    completions), so no lock is taken.
    """

    def __init__(self, gateway: ChatGateway, lookup_delay_seconds: float = 1.0):
        self._gateway = gateway
        self._lookup_delay = lookup_delay_seconds
        self._lookups: list[asyncio.Task[GenerationMetadata | None]] = []

        self.total_cost = 0.0
        self.total_generation_time = 0.0
        self.total_web_requests = 0
        self.failed_lookups = 0
        self.metadata: list[GenerationMetadata] = []
        self.resources: list[Resource] = []
        self.annotations: list[Citation] = []
        self.failed_threads: list[ResearchThread] = []

    def add_generation_metadata(self, metadata: GenerationMetadata) -> None:
        """Fold one resolved lookup into the totals. Costs never go down."""
        self.metadata.append(metadata)
        self.total_cost += _positive(metadata.total_cost_usd)
        self.total_generation_time += _positive(metadata.generation_time_ms) / 1000.0
        self.total_web_requests += max(0, metadata.web_search_result_count)

    def add_resources(self, resources: list[Resource]) -> None:
        self.resources.extend(resources)

    def add_failed_thread(self, thread: ResearchThread) -> None:
        self.failed_threads.append(thread)

    def record_call(
        self, result: ChatResult, on_metadata: MetadataCallback | None = None
    ) -> asyncio.Task[GenerationMetadata | None] | None:
        """Collect a call's citations and start its metadata lookup.

        Returns the lookup handle, or None when the call has no request id.
        """
        self.annotations.extend(result.annotations)
        if not result.request_id:
            return None

        task = asyncio.create_task(
            self._lookup(result, on_metadata or self.add_generation_metadata),
            name=f"generation-metadata-{result.request_id}",
        )
        self._lookups.append(task)
        return task

    async def _lookup(
        self, result: ChatResult, callback: MetadataCallback
    ) -> GenerationMetadata | None:
        metadata = await lookup_generation_metadata(
            self._gateway, result.request_id, self._lookup_delay
        )
        if metadata is None:
            # Missing telemetry only leaves the call out of the totals
            self.failed_lookups += 1
            return None

        result.generation_metadata = metadata
        callback(metadata)
        return metadata

    @property
    def pending_count(self) -> int:
        return sum(1 for task in self._lookups if not task.done())

    async def drain(self) -> None:
        """Wait until every lookup started so far has resolved."""
        while pending := [task for task in self._lookups if not task.done()]:
            logfire.debug("Waiting for generation metadata", pending=len(pending))
            await asyncio.gather(*pending, return_exceptions=True)

    def cancel_pending(self) -> None:
        """Drop outstanding lookups when the run is abandoned."""
        for task in self._lookups:
            if not task.done():
                task.cancel()


__all__ = ["MetadataCallback", "ResultAccumulator", "lookup_generation_metadata"]
