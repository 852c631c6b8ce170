"""Runtime introspection shared by the profiling endpoints and the agent.

Every function returns plain text, ready to be written to an HTTP response
or a TCP socket.
"""

from __future__ import annotations

import asyncio
import gc
import io
import os
import platform
import sys
import threading
import time
import traceback
import tracemalloc
from collections import Counter

from exapi.core.constants import (
    HEAP_TOP_ENTRIES,
    PROFILE_SAMPLE_INTERVAL,
    PROFILE_TOP_ENTRIES,
)

_STARTED_AT = time.time()


def thread_stacks() -> str:
    """Dump the current stack of every live thread."""
    names = {thread.ident: thread.name for thread in threading.enumerate()}
    out = io.StringIO()
    for ident, frame in sys._current_frames().items():
        out.write(f"thread {names.get(ident, '?')} ({ident}):\n")
        out.write("".join(traceback.format_stack(frame)))
        out.write("\n")
    return out.getvalue()


def task_stacks() -> str:
    """Dump the stack of every pending task on the running event loop.

    Returns a short notice when called outside of an event loop.
    """
    try:
        tasks = asyncio.all_tasks()
    except RuntimeError:
        return "no running event loop\n"

    out = io.StringIO()
    out.write(f"{len(tasks)} tasks\n\n")
    for task in tasks:
        out.write(f"task {task.get_name()} ({task.get_coro()!r}):\n")
        task.print_stack(file=out)
        out.write("\n")
    return out.getvalue()


def heap_profile(limit: int = HEAP_TOP_ENTRIES) -> str:
    """Report the top allocation sites recorded by tracemalloc."""
    if not tracemalloc.is_tracing():
        return "tracemalloc is not tracing\n"

    current, peak = tracemalloc.get_traced_memory()
    stats = tracemalloc.take_snapshot().statistics("lineno")
    lines = [f"current={current} peak={peak}", ""]
    lines.extend(str(stat) for stat in stats[:limit])
    return "\n".join(lines) + "\n"


def gc_stats() -> str:
    """Report per-generation collector statistics."""
    lines = [f"counts={gc.get_count()} thresholds={gc.get_threshold()}"]
    for generation, stats in enumerate(gc.get_stats()):
        lines.append(
            f"gen{generation}: collections={stats['collections']} "
            f"collected={stats['collected']} "
            f"uncollectable={stats['uncollectable']}"
        )
    return "\n".join(lines) + "\n"


def run_gc() -> str:
    """Force a full collection and report how many objects it freed."""
    return f"collected {gc.collect()} objects\n"


def memory_stats() -> str:
    """Report traced memory, or a hint when tracemalloc is off."""
    if tracemalloc.is_tracing():
        current, peak = tracemalloc.get_traced_memory()
        return f"traced current={current} peak={peak}\n"
    return f"tracemalloc is not tracing; gc objects={len(gc.get_objects())}\n"


def runtime_stats() -> str:
    """Report process-level counters."""
    lines = [
        f"pid={os.getpid()}",
        f"uptime={time.time() - _STARTED_AT:.0f}s",
        f"threads={threading.active_count()}",
        f"gc_counts={gc.get_count()}",
    ]
    return "\n".join(lines) + "\n"


def version_info() -> str:
    """Report the interpreter version."""
    return f"{platform.python_implementation()} {platform.python_version()}\n"


def sample_cpu_profile(
    seconds: float,
    interval: float = PROFILE_SAMPLE_INTERVAL,
    limit: int = PROFILE_TOP_ENTRIES,
) -> str:
    """Statistically profile all threads for ``seconds``.

    Every ``interval`` the innermost frame of each thread other than the
    sampler is counted. The result lists the hottest locations first.

    Args:
        seconds: How long to sample.
        interval: Delay between samples.
        limit: Maximum number of locations reported.

    Returns:
        str: ``samples location`` lines sorted by sample count.
    """
    own_ident = threading.get_ident()
    hits: Counter[str] = Counter()
    samples = 0
    deadline = time.monotonic() + seconds

    while time.monotonic() < deadline:
        for ident, frame in sys._current_frames().items():
            if ident == own_ident:
                continue
            code = frame.f_code
            hits[f"{code.co_filename}:{frame.f_lineno} {code.co_name}"] += 1
        samples += 1
        time.sleep(interval)

    lines = [f"{samples} samples over {seconds:g}s", ""]
    lines.extend(
        f"{count:6d} {location}" for location, count in hits.most_common(limit)
    )
    return "\n".join(lines) + "\n"
