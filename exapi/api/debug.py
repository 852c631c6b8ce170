"""Profiling endpoints mounted under a configurable prefix.

All endpoints answer in plain text and are hidden from the OpenAPI schema.
"""

import tracemalloc
from typing import Annotated

from fastapi import APIRouter, Query
from fastapi.responses import PlainTextResponse
from starlette.concurrency import run_in_threadpool

from exapi.core import diagnostics
from exapi.core.constants import DEFAULT_PROFILE_SECONDS, MAX_PROFILE_SECONDS

PROFILES = {
    "threads": "stack traces of all live threads",
    "tasks": "stack traces of all pending asyncio tasks",
    "heap": "top allocation sites (tracemalloc)",
    "gc": "garbage collector statistics",
    "profile": "CPU profile sampled for ?seconds=N",
}


def build_profiling_router() -> APIRouter:
    """Create the profiling router and start allocation tracing.

    Returns:
        APIRouter: Router to include under the profiling prefix.
    """
    if not tracemalloc.is_tracing():
        tracemalloc.start()

    router = APIRouter(
        include_in_schema=False, default_response_class=PlainTextResponse
    )

    @router.get("/")
    async def index() -> str:
        """List the available profiles."""
        lines = [f"{name}: {description}" for name, description in PROFILES.items()]
        return "\n".join(lines) + "\n"

    @router.get("/threads")
    async def threads() -> str:
        """Dump every thread's stack."""
        return diagnostics.thread_stacks()

    @router.get("/tasks")
    async def tasks() -> str:
        """Dump every pending task's stack."""
        return diagnostics.task_stacks()

    @router.get("/heap")
    async def heap() -> str:
        """Report the top allocation sites."""
        return await run_in_threadpool(diagnostics.heap_profile)

    @router.get("/gc")
    async def gc_stats() -> str:
        """Report collector statistics."""
        return diagnostics.gc_stats()

    @router.get("/profile")
    async def profile(
        seconds: Annotated[
            float, Query(gt=0, le=MAX_PROFILE_SECONDS)
        ] = DEFAULT_PROFILE_SECONDS,
    ) -> str:
        """Sample a CPU profile without blocking the event loop."""
        return await run_in_threadpool(diagnostics.sample_cpu_profile, seconds)

    return router
