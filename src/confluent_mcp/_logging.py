"""
Logging and global exception handling utilities for the Confluent Flink MCP server.

This module provides functions to:
- Set up root logger configuration early in process startup (`setup_logging`).
- Ensure all unhandled synchronous and asynchronous exceptions are logged (`setup_global_exception_logging`).

Log records go to stderr so they never pollute the stdio MCP transport. Setting
`CONFLUENT_MCP_LOG_FORMAT=json` switches to structured JSON records produced by
python-json-logger, which is what log aggregators in container platforms expect.

Call `setup_logging()` before any other imports in your main entrypoint to ensure all loggers are configured correctly.
Call `setup_global_exception_logging()` once at process startup to guarantee robust error visibility.
"""

import asyncio
import logging
import os
import sys
from types import TracebackType
from typing import Any

from pythonjsonlogger import json as jsonlogger

LOG_FORMAT_ENV_VAR = "CONFLUENT_MCP_LOG_FORMAT"
"""str: Name of the environment variable selecting the log format ('text' or 'json')."""

_TEXT_FORMAT = "[%(asctime)s] %(levelname)s: %(message)s"
_JSON_FORMAT = "%(asctime)s %(name)s %(levelname)s %(message)s"


def _build_handler() -> logging.Handler:
    """Create the stderr handler with the formatter selected by LOG_FORMAT_ENV_VAR."""
    handler = logging.StreamHandler(sys.stderr)
    if os.getenv(LOG_FORMAT_ENV_VAR, "text").lower() == "json":
        handler.setFormatter(
            jsonlogger.JsonFormatter(
                fmt=_JSON_FORMAT,
                datefmt="%Y-%m-%dT%H:%M:%S%z",
            )
        )
    else:
        handler.setFormatter(logging.Formatter(_TEXT_FORMAT))
    return handler


def setup_logging() -> None:
    """
    Set up logging configuration for the application.

    This function configures the root logger using the PYTHONLOGLEVEL environment variable to set the log level
    and CONFLUENT_MCP_LOG_FORMAT to choose between plain text and JSON records.
    It should be called before any other imports in your main entrypoint to ensure that all loggers are set up correctly
    and that no other modules configure logging before this setup takes effect.
    """
    logging.basicConfig(
        level=os.getenv("PYTHONLOGLEVEL", "INFO"),
        handlers=[_build_handler()],
        force=True,  # Ensure we override any existing logging configuration
    )


# Idempotency guard for global exception logging setup
_EXC_LOGGING_INSTALLED = False


def setup_global_exception_logging() -> None:
    """
    Set up global logging for all unhandled exceptions (synchronous and asynchronous) in the process.

    This function ensures that:
        - All uncaught exceptions in synchronous code are logged using the root logger.
        - All uncaught exceptions in asyncio event loops are logged, including loops created later,
          by patching `asyncio.new_event_loop` to install the handler on every new loop.
        - The handler is also set on the current event loop, if one exists.

    Calling this function more than once is a no-op.
    """
    global _EXC_LOGGING_INSTALLED
    if _EXC_LOGGING_INSTALLED:
        return
    _EXC_LOGGING_INSTALLED = True

    def _log_unhandled_exception(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: TracebackType | None,
    ) -> None:
        if issubclass(exc_type, KeyboardInterrupt):
            return
        logging.error(
            "UNHANDLED EXCEPTION", exc_info=(exc_type, exc_value, exc_traceback)
        )

    sys.excepthook = _log_unhandled_exception

    def _asyncio_exception_handler(
        loop: asyncio.AbstractEventLoop, context: dict[str, Any]
    ) -> None:
        exception = context.get("exception")
        logging.error(
            f"UNHANDLED ASYNC EXCEPTION: {context.get('message')}",
            exc_info=(
                (type(exception), exception, exception.__traceback__)
                if exception
                else None
            ),
        )

    _orig_new_event_loop = asyncio.new_event_loop

    def _patched_new_event_loop(*args: Any, **kwargs: Any) -> asyncio.AbstractEventLoop:
        loop = _orig_new_event_loop(*args, **kwargs)
        loop.set_exception_handler(_asyncio_exception_handler)
        return loop

    asyncio.new_event_loop = _patched_new_event_loop

    try:
        asyncio.get_event_loop().set_exception_handler(_asyncio_exception_handler)
    except RuntimeError:
        # No current loop; the patched factory covers loops created later
        pass
