"""Endpoint configuration: exception reporting, instrumentation, protocol version.

A process-wide default is created on first use by :func:`get_configuration`
and changed only through :func:`configure`. Servers copy the configuration
they are given (or the default) when they are constructed, so later calls to
:func:`configure` only affect servers built afterwards.
"""
import logging
import os
import threading
from typing import Any, Callable, Dict, Optional

from .utils.errors import UnsupportedProtocolVersionError

logger = logging.getLogger(__name__)

SUPPORTED_PROTOCOL_VERSIONS = ("2025-06-18", "2025-03-26", "2024-11-05")
LATEST_PROTOCOL_VERSION = SUPPORTED_PROTOCOL_VERSIONS[0]

ExceptionReporter = Callable[[BaseException, Dict[str, Any]], None]
InstrumentationCallback = Callable[[Dict[str, Any]], None]


def _discard_exception(exception: BaseException, context: Dict[str, Any]) -> None:
    pass


def _discard_instrumentation(data: Dict[str, Any]) -> None:
    pass


def validate_protocol_version(version: Optional[str]) -> str:
    """Return ``version`` if supported, the latest version for ``None``."""
    if version is None:
        return LATEST_PROTOCOL_VERSION
    if version not in SUPPORTED_PROTOCOL_VERSIONS:
        raise UnsupportedProtocolVersionError(
            f"protocol_version must be one of {', '.join(SUPPORTED_PROTOCOL_VERSIONS)}, "
            f"got {version!r}"
        )
    return version


class Configuration:
    """Callbacks and protocol version used by an :class:`MCPServer`."""

    def __init__(
        self,
        exception_reporter: Optional[ExceptionReporter] = None,
        instrumentation_callback: Optional[InstrumentationCallback] = None,
        protocol_version: Optional[str] = None,
    ):
        self._exception_reporter = exception_reporter
        self._instrumentation_callback = instrumentation_callback
        self._protocol_version = validate_protocol_version(protocol_version)

    @classmethod
    def from_env(cls) -> "Configuration":
        """Build a configuration from ``MCP_PROTOCOL_VERSION``."""
        return cls(protocol_version=os.getenv("MCP_PROTOCOL_VERSION") or None)

    @property
    def exception_reporter(self) -> ExceptionReporter:
        return self._exception_reporter or _discard_exception

    @exception_reporter.setter
    def exception_reporter(self, reporter: Optional[ExceptionReporter]):
        self._exception_reporter = reporter

    @property
    def instrumentation_callback(self) -> InstrumentationCallback:
        return self._instrumentation_callback or _discard_instrumentation

    @instrumentation_callback.setter
    def instrumentation_callback(self, callback: Optional[InstrumentationCallback]):
        self._instrumentation_callback = callback

    @property
    def protocol_version(self) -> str:
        return self._protocol_version

    @protocol_version.setter
    def protocol_version(self, version: Optional[str]):
        self._protocol_version = validate_protocol_version(version)

    def report_exception(self, exception: BaseException, context: Dict[str, Any]) -> None:
        """Pass ``exception`` to the reporter. A failing reporter is logged, not raised."""
        try:
            self.exception_reporter(exception, context)
        except Exception as e:
            logger.error(f"Exception reporter failed: {e}", exc_info=True)

    def instrument(self, data: Dict[str, Any]) -> None:
        """Pass ``data`` to the instrumentation callback. A failing callback is logged."""
        try:
            self.instrumentation_callback(data)
        except Exception as e:
            logger.error(f"Instrumentation callback failed: {e}", exc_info=True)

    def copy(self) -> "Configuration":
        return Configuration(
            exception_reporter=self._exception_reporter,
            instrumentation_callback=self._instrumentation_callback,
            protocol_version=self._protocol_version,
        )

    def __repr__(self) -> str:
        return f"Configuration(protocol_version={self._protocol_version!r})"


_default_configuration: Optional[Configuration] = None
_default_lock = threading.Lock()

_UNSET: Any = object()


def get_configuration() -> Configuration:
    """Return the process-wide configuration, creating it on first use."""
    global _default_configuration
    with _default_lock:
        if _default_configuration is None:
            _default_configuration = Configuration()
        return _default_configuration


def configure(
    exception_reporter: Optional[ExceptionReporter] = _UNSET,
    instrumentation_callback: Optional[InstrumentationCallback] = _UNSET,
    protocol_version: Optional[str] = _UNSET,
) -> Configuration:
    """Update the process-wide configuration.

    Only the arguments that are passed are changed. ``protocol_version=None``
    resets to the latest supported version. An unsupported version raises
    before anything is modified.
    """
    config = get_configuration()
    if protocol_version is not _UNSET:
        version = validate_protocol_version(protocol_version)
    with _default_lock:
        if exception_reporter is not _UNSET:
            config.exception_reporter = exception_reporter
        if instrumentation_callback is not _UNSET:
            config.instrumentation_callback = instrumentation_callback
        if protocol_version is not _UNSET:
            config.protocol_version = version
    logger.info(f"Updated default configuration: {config!r}")
    return config


def reset_configuration() -> None:
    """Drop the process-wide configuration; the next use recreates it."""
    global _default_configuration
    with _default_lock:
        _default_configuration = None
