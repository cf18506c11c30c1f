"""
Structured logging pipeline.

Messages are plain dicts flowing from interfaces through loggers to sinks:
- interfaces: print-style call sites (SimpleInterface)
- loggers: filter, level gate and default fields shared by every sink
- MultiLogger: fan-out to named children, failures isolated per child
- sinks: memory, stream, console, file and async senders

Logging never raises into the caller; failures are reported as diagnostic
messages to the root logger.

Library: structlog + orjson + pydantic-settings.
"""

from .base import Logger, LoggerBase
from .config import LoggingSettings, LogFormat
from .core import configure_logging, get_logger
from .dispatch import (
    current_root_logger,
    handle_logging_exceptions,
    install_root_logger,
    report_diagnostic,
    use_root_logger,
)
from .errors import ConfigurationError, FlushError, InvalidFieldsError, InvalidLogLevelError, LogError
from .formatters import (
    message_format_console,
    message_format_json,
    message_format_json_static,
    message_format_json_string,
    message_format_simple,
    message_format_technical,
)
from .interface import InterfaceBase, SimpleInterface
from .levels import LOG_LEVELS, LogLevel, numeric_log_level
from .message import Message, make_log_message, serialize_message, try_inspect
from .multi import MultiLogger
from .secret import Secret
from .serialize import jsonify_for_log, register_converter
from .sinks import AsyncSenderLogger, ConsoleLogger, FileLogger, MemLogger, StreamLogger
from .timestamp import PreciseTimestamp

__all__ = [
    "AsyncSenderLogger",
    "ConfigurationError",
    "ConsoleLogger",
    "FileLogger",
    "FlushError",
    "InterfaceBase",
    "InvalidFieldsError",
    "InvalidLogLevelError",
    "LOG_LEVELS",
    "LogError",
    "LogFormat",
    "LogLevel",
    "Logger",
    "LoggerBase",
    "LoggingSettings",
    "MemLogger",
    "Message",
    "MultiLogger",
    "PreciseTimestamp",
    "Secret",
    "SimpleInterface",
    "StreamLogger",
    "configure_logging",
    "current_root_logger",
    "get_logger",
    "handle_logging_exceptions",
    "install_root_logger",
    "jsonify_for_log",
    "make_log_message",
    "message_format_console",
    "message_format_json",
    "message_format_json_static",
    "message_format_json_string",
    "message_format_simple",
    "message_format_technical",
    "numeric_log_level",
    "register_converter",
    "report_diagnostic",
    "serialize_message",
    "try_inspect",
    "use_root_logger",
]
