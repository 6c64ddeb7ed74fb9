"""Parallel execution of research threads.

Each plan item becomes a ``ResearchThread``: a first-pass call with web
search that also reports its sources, then a refinement call that keeps only
what is relevant to the user's original query.
"""

import asyncio
from collections.abc import Coroutine
from typing import Any

import logfire

from openrouter_deep_research.agents.base import StageDependencies
from openrouter_deep_research.agents.prompts import (
    REFINING_SYSTEM_PROMPT_TEMPLATE,
    RESEARCH_SYSTEM_PROMPT,
)
from openrouter_deep_research.core.exceptions import ResearchCancelledError
from openrouter_deep_research.models.chat import ChatResult
from openrouter_deep_research.models.messages import ChatMessage
from openrouter_deep_research.models.research import ResearchThread
from openrouter_deep_research.services.tag_protocol import parse_resources, strip_resources_section


async def _first_exception_cancels(tasks: list[asyncio.Task[Any]]) -> None:
    """Wait for all tasks; on the first failure cancel the rest and re-raise it."""
    if not tasks:
        return
    try:
        done, pending = await asyncio.wait(tasks, return_when=asyncio.FIRST_EXCEPTION)
    except asyncio.CancelledError:
        for task in tasks:
            task.cancel()
        raise

    failed = next((t for t in tasks if t in done and not t.cancelled() and t.exception()), None)
    if failed is None:
        return
    for task in pending:
        task.cancel()
    await asyncio.gather(*pending, return_exceptions=True)
    raise failed.exception()


class ResearchExecutor:
    """Runs every plan item of a phase concurrently."""

    async def execute(
        self, deps: StageDependencies, plan_items: list[str]
    ) -> list[ResearchThread]:
        """Research all plan items and return their threads in plan order.

        By default the first failing thread cancels its siblings and the error
        propagates. With ``deep_research_tolerate_thread_failures`` failed threads
        are left out of the returned list and kept on the accumulator with their
        error, unless every thread failed.
        """
        user_query = deps.user_query
        threads = [
            ResearchThread(prompt=item, on_metadata=deps.accumulator.add_generation_metadata)
            for item in plan_items
        ]
        if not threads:
            return []

        width = deps.config.deep_research_max_concurrent_threads or len(threads)
        semaphore = asyncio.Semaphore(width)

        async def bounded(thread: ResearchThread) -> None:
            async with semaphore:
                await self.run_thread(deps, thread, user_query)

        coros: list[Coroutine[Any, Any, None]] = [bounded(t) for t in threads]
        logfire.info("Executing research threads", threads=len(threads), concurrency=width)

        if not deps.config.deep_research_tolerate_thread_failures:
            await _first_exception_cancels([asyncio.create_task(c) for c in coros])
            return threads

        outcomes = await asyncio.gather(*coros, return_exceptions=True)
        errors = [o for o in outcomes if isinstance(o, BaseException)]
        for error in errors:
            if isinstance(error, (ResearchCancelledError, asyncio.CancelledError)):
                raise error
        if errors and len(errors) == len(threads):
            raise errors[0]

        survivors = []
        for thread, outcome in zip(threads, outcomes, strict=True):
            if isinstance(outcome, BaseException):
                thread.error = str(outcome)
                deps.accumulator.add_failed_thread(thread)
                logfire.warning(
                    "Research thread failed, continuing without it",
                    prompt=thread.prompt,
                    error=thread.error,
                )
            else:
                survivors.append(thread)
        return survivors

    async def run_thread(
        self, deps: StageDependencies, thread: ResearchThread, user_query: str
    ) -> ResearchThread:
        """First pass then refinement for one thread, updating it in place."""
        config = deps.config

        first_pass = await deps.complete(
            model=config.deep_research_research_model,
            max_tokens=config.max_tokens,
            max_web_requests=config.deep_research_web_requests_per_subrequest,
            messages=[
                ChatMessage.text("system", RESEARCH_SYSTEM_PROMPT),
                ChatMessage.text("user", thread.prompt),
            ],
        )
        thread.first_pass = first_pass
        thread.resources = parse_resources(first_pass.content)
        self._track(deps, thread, first_pass)

        thread.refining_prompt = REFINING_SYSTEM_PROMPT_TEMPLATE.format(user_query=user_query)
        refined = await deps.complete(
            model=config.deep_research_refining_model,
            max_tokens=config.max_tokens,
            max_web_requests=0,
            messages=[
                ChatMessage.text("system", thread.refining_prompt),
                ChatMessage.text("user", strip_resources_section(first_pass.content)),
            ],
        )
        thread.refined = refined
        deps.accumulator.add_resources(thread.resources)
        self._track(deps, thread, refined)

        logfire.debug(
            "Research thread complete",
            prompt=thread.prompt,
            resources=len(thread.resources),
        )
        return thread

    @staticmethod
    def _track(deps: StageDependencies, thread: ResearchThread, result: ChatResult) -> None:
        lookup = deps.accumulator.record_call(result, thread.on_metadata)
        if lookup is not None:
            thread.pending_metadata_lookups.append(lookup)
