"""Background diagnostics agent speaking a one-line TCP protocol.

A client connects, sends a single command terminated by a newline and
receives a plain-text reply before the connection is closed::

    $ echo stack | nc 127.0.0.1 32388

The agent runs on its own daemon threads, so it keeps answering even when
the event loop serving requests is blocked.
"""

from __future__ import annotations

import socketserver
import threading
from collections.abc import Callable
from typing import Final

from loguru import logger

from exapi.core import diagnostics
from exapi.core.constants import DIAGNOSTICS_READ_LIMIT

COMMANDS: Final[dict[str, Callable[[], str]]] = {
    "version": diagnostics.version_info,
    "stats": diagnostics.runtime_stats,
    "stack": diagnostics.thread_stacks,
    "gc": diagnostics.run_gc,
    "memstats": diagnostics.memory_stats,
}


def _help() -> str:
    return "commands: " + ", ".join(["help", *COMMANDS]) + "\n"


def execute(command: str) -> str:
    """Run one agent command and return its reply.

    Args:
        command: Command name; surrounding whitespace and case are ignored.

    Returns:
        str: The reply text.
    """
    name = command.strip().lower()
    if name == "help":
        return _help()
    handler = COMMANDS.get(name)
    if handler is None:
        return f"unknown command: {name}\n"
    return handler()


class _AgentHandler(socketserver.StreamRequestHandler):
    def handle(self) -> None:
        line = self.rfile.readline(DIAGNOSTICS_READ_LIMIT).decode(
            "utf-8", errors="replace"
        )
        self.wfile.write(execute(line).encode("utf-8"))


class _AgentServer(socketserver.ThreadingTCPServer):
    allow_reuse_address = True
    daemon_threads = True


def parse_address(address: str) -> tuple[str, int]:
    """Split ``host:port`` into its parts.

    Args:
        address: Address such as ``0.0.0.0:32388``. An empty host binds all
            interfaces.

    Returns:
        tuple[str, int]: Host and port.
    """
    host, _, port = address.rpartition(":")
    return host or "0.0.0.0", int(port)  # noqa: S104 - agent binds where configured


class DiagnosticsAgent:
    """Threaded TCP listener answering diagnostics commands.

    Args:
        address: ``host:port`` to listen on. Port 0 picks a free port.
    """

    def __init__(self, address: str) -> None:
        self.address = address
        self._server: _AgentServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        """Whether the listener is accepting connections."""
        return self._server is not None

    @property
    def bound_address(self) -> tuple[str, int] | None:
        """The actual socket address, once started."""
        if self._server is None:
            return None
        host, port = self._server.server_address[:2]
        return str(host), int(port)

    def start(self) -> None:
        """Bind the socket and serve on a daemon thread. Idempotent."""
        if self._server is not None:
            return

        self._server = _AgentServer(parse_address(self.address), _AgentHandler)
        self._thread = threading.Thread(
            target=self._server.serve_forever,
            name="diagnostics-agent",
            daemon=True,
        )
        self._thread.start()
        logger.info("Diagnostics agent listening on {}", self.bound_address)

    def stop(self) -> None:
        """Stop serving and release the socket."""
        if self._server is None:
            return

        self._server.shutdown()
        self._server.server_close()
        if self._thread is not None:
            self._thread.join()
        self._server = None
        self._thread = None
        logger.info("Diagnostics agent stopped")
