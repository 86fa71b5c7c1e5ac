"""Logging for jsupdate: logfire spans fanned out to configurable sinks.

The console is rendered by logfire itself. The file and OTLP sinks are
OpenTelemetry span processors handed to ``logfire.configure``, each
wrapped in a LevelFilteringExporter so it can keep its own level.
"""

from __future__ import annotations

import contextlib
import os
from abc import abstractmethod
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

from opentelemetry.proto.logs.v1 import logs_pb2
from opentelemetry.sdk.trace import ReadableSpan
from opentelemetry.sdk.trace.export import SpanExporter, SpanExportResult
from pydantic import Field, PrivateAttr, model_validator

from jsupdate.core.base import BaseConfig

_current_logger: Logger | None = None


class _LoggerProxy:
    """Stand-in imported as ``logger`` by every module.

    Module-level imports happen before any configuration is read, so
    the proxy looks up the active Logger on each call and silently
    drops messages until setup_logger() has installed one.
    """

    def __getattr__(self, name):
        if _current_logger is not None:
            return getattr(_current_logger, name)

        def _discard(*args, **kwargs):  # noqa: ARG001
            return None
        return _discard

    def __enter__(self):
        if _current_logger is not None:
            return _current_logger.__enter__()
        return self

    def __exit__(self, *args):
        if _current_logger is not None:
            return _current_logger.__exit__(*args)
        return False


logger = _LoggerProxy()


# Level name -> OpenTelemetry severity number (higher is more severe)
LEVELS = {
    'spew': logs_pb2.SEVERITY_NUMBER_TRACE,
    'trace': logs_pb2.SEVERITY_NUMBER_TRACE3,
    'debug': logs_pb2.SEVERITY_NUMBER_DEBUG,
    'info': logs_pb2.SEVERITY_NUMBER_INFO,
    'warn': logs_pb2.SEVERITY_NUMBER_WARN,
    'error': logs_pb2.SEVERITY_NUMBER_ERROR,
    'fatal': logs_pb2.SEVERITY_NUMBER_FATAL,
}

# RFC 5424 severities; anything not listed is reported as debug (7)
_SYSLOG_SEVERITY = {'fatal': 2, 'error': 3, 'warn': 4, 'info': 6}
_SYSLOG_FACILITY_USER = 1

_ESCAPES = str.maketrans({
    '\\': '\\\\',
    '\n': '\\n',
    '\r': '\\r',
    '\t': '\\t',
})

# Attributes logfire and OpenTelemetry attach to every span
_INTERNAL_KEYS = frozenset({
    'code.filepath', 'code.lineno', 'code.function',
    'logfire.msg', 'logfire.level_num', 'logfire.span_type',
    'logfire.msg_template', 'logfire.json_schema',
})
_INTERNAL_PREFIXES = ('otel.', 'telemetry.', 'service.', 'process.')


def level_name(level_num: int) -> str:
    """Name of the most severe level not above ``level_num``."""
    matching = [
        name for name, number in LEVELS.items() if number <= level_num
    ]
    if not matching:
        return "unknown"
    return max(matching, key=LEVELS.__getitem__)


def _span_level(span: ReadableSpan) -> int:
    attributes = span.attributes or {}
    return attributes.get('logfire.level_num', LEVELS['info'])


def _template_fields(span: ReadableSpan) -> dict:
    """Values a Sink.format_template may refer to."""
    attributes = span.attributes or {}
    filepath = attributes.get('code.filepath', "")
    lineno = attributes.get('code.lineno', "")
    level = level_name(_span_level(span))
    severity = _SYSLOG_SEVERITY.get(level, 7)

    return {
        'timestamp': datetime.fromtimestamp(span.start_time / 1e9, tz=UTC),
        'level': level,
        'message': attributes.get('logfire.msg', span.name),
        'filepath': filepath,
        'lineno': lineno,
        'location': f"{filepath}:{lineno}" if filepath else "",
        'function': attributes.get('code.function', ""),
        'priority': 8 * _SYSLOG_FACILITY_USER + severity,
    }


def _user_attributes(span: ReadableSpan) -> dict:
    """Attributes passed by the caller, e.g. logger.info(msg, file=...)."""
    return {
        key: value
        for key, value in (span.attributes or {}).items()
        if key not in _INTERNAL_KEYS
        and not key.startswith(_INTERNAL_PREFIXES)
    }


class LevelFilteringExporter(SpanExporter):
    """Wraps an exporter and drops spans below ``min_level``."""

    def __init__(self, exporter: SpanExporter, min_level: str | None):
        self._exporter = exporter
        self._threshold = LEVELS.get(
            (min_level or 'info').lower(), LEVELS['info']
        )

    def export(self, spans: list[ReadableSpan]) -> SpanExportResult:
        kept = [span for span in spans if _span_level(span) >= self._threshold]
        if not kept:
            return SpanExportResult.SUCCESS
        return self._exporter.export(kept)

    def shutdown(self) -> None:
        self._exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000) -> bool:
        return self._exporter.force_flush(timeout_millis)


class Sink(BaseConfig):
    """One log destination.

    Subclasses build the span processor for their destination in
    create_processor(). Being a BaseConfig, a sink is closed by the
    Logger that holds it.
    """

    enabled: bool = Field(default=True, description="Whether to emit here")
    level: str | None = Field(
        default=None,
        description=(
            "Minimum level for this sink (spew, trace, debug, info, "
            "warn, error or fatal). Unset uses the Logger's level"
        )
    )
    escape_special_characters: bool = Field(
        default=False,
        description="Write newlines and tabs in messages as \\n and \\t",
    )
    format_template: str | None = Field(
        default=None,
        description=(
            "str.format template for one line, e.g. "
            "'{timestamp} {level} {message}'. Unset writes span JSON"
        ),
    )

    _processor: Any = PrivateAttr(default=None)

    def _format_span(self, span: ReadableSpan) -> str:
        if not self.format_template:
            return span.to_json() + os.linesep

        fields = _template_fields(span)
        if self.escape_special_characters:
            fields['message'] = fields['message'].translate(_ESCAPES)

        try:
            line = self.format_template.format(**fields)
        except KeyError as e:
            return f"ERROR: Invalid template field {e}\n"

        extra = _user_attributes(span)
        if extra:
            pairs = ' '.join(f"{k}={v!r}" for k, v in sorted(extra.items()))
            line = f"{line} │ {pairs}"
        return line + '\n'

    @abstractmethod
    def create_processor(self, log_root: Path, run_name: str):
        """Span processor for this sink, or None if logfire handles it."""

    def close(self):
        if self._processor is None:
            return
        with contextlib.suppress(Exception):
            self._processor.shutdown()


class ConsoleSink(Sink):
    """Terminal output, drawn by logfire's console exporter."""

    verbose: bool = Field(
        default=False,
        description="Include span attributes in console lines",
    )
    colors: str = Field(
        default="auto",
        description="auto, always or never",
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class OTLPSink(Sink):
    """Export spans to an OpenTelemetry collector over gRPC."""

    enabled: bool = Field(default=False, description="Export over OTLP")
    endpoint: str = Field(
        default="http://localhost:4317",
        description="Collector gRPC endpoint",
    )
    insecure: bool = Field(
        default=True,
        description="Connect without TLS",
    )
    headers: dict[str, str] = Field(
        default_factory=dict,
        description="Extra request headers, e.g. for an API key",
    )

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import (
            OTLPSpanExporter,
        )
        from opentelemetry.sdk.trace.export import BatchSpanProcessor

        exporter: SpanExporter = OTLPSpanExporter(
            endpoint=self.endpoint,
            insecure=self.insecure,
            headers=self.headers or None,
        )
        if self.level:
            exporter = LevelFilteringExporter(exporter, self.level)
        return BatchSpanProcessor(exporter)


class FileSink(Sink):
    """Append formatted spans to a log file, one line each."""

    enabled: bool = Field(default=False, description="Write a log file")
    path: str = Field(
        default="{log_root}/{run_name}/jsupdate.log",
        description="File path; {log_root} and {run_name} are filled in",
    )

    _file: Any = PrivateAttr(default=None)

    def create_processor(self, log_root: Path, run_name: str):
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
        )

        log_path = Path(self.path.format(log_root=log_root, run_name=run_name))
        log_path.parent.mkdir(parents=True, exist_ok=True)

        # Line buffered and held open until close()
        self._file = open(log_path, "a", buffering=1, encoding="utf-8")  # noqa: SIM115

        writer = ConsoleSpanExporter(out=self._file, formatter=self._format_span)
        return BatchSpanProcessor(LevelFilteringExporter(writer, self.level))

    def close(self):
        # Shut the processor down first so queued spans get written
        super().close()

        if self._file is None or self._file.closed:
            return
        with contextlib.suppress(Exception):
            self._file.flush()
            self._file.close()


class LogfireSink(Sink):
    """Send spans to the logfire.dev service."""

    enabled: bool = Field(default=False, description="Send to logfire.dev")
    token: str | None = Field(
        default=None,
        description="Write token; LOGFIRE_TOKEN is used when unset",
    )

    def create_processor(self, log_root: Path, run_name: str):
        return None


class Logger(BaseConfig):
    """The configured set of sinks plus the logging methods.

    Every method goes through logfire, so messages logged inside
    ``logger.span(...)`` nest under that span in every sink. Closing the
    Logger closes each sink, which is what ``with logger:`` relies on.
    """

    level: str = Field(
        default="info",
        description="Level for sinks that do not set their own",
    )
    console: ConsoleSink = Field(default_factory=ConsoleSink)
    otlp: OTLPSink = Field(default_factory=OTLPSink)
    file: FileSink = Field(default_factory=FileSink)
    logfire: LogfireSink = Field(default_factory=LogfireSink)

    @model_validator(mode='after')
    def _inherit_level(self) -> 'Logger':
        for sink in (self.console, self.file):
            sink.level = sink.level or self.level
        return self

    def _sinks(self) -> list[Sink]:
        return [self.console, self.otlp, self.file, self.logfire]

    def setup(self, log_root: Path, run_name: str):
        """Start every enabled sink and hand them to logfire.

        Args:
            log_root: Directory that log file paths are relative to
            run_name: Name of the project being updated; it appears in
                the default log file path and in the service name
        """
        import logfire
        from logfire import ConsoleOptions

        processors = []
        for sink in self._sinks():
            if not sink.enabled:
                continue
            sink._processor = sink.create_processor(log_root, run_name)
            if sink._processor is not None:
                processors.append(sink._processor)

        console = False
        if self.console.enabled:
            # logfire's console stops at trace
            min_level = self.console.level
            if min_level == 'spew':
                min_level = 'trace'
            console = ConsoleOptions(
                min_log_level=min_level,
                verbose=self.console.verbose,
                colors=self.console.colors,
                include_timestamps=True,
            )

        logfire.configure(
            service_name=f"jsupdate-{run_name}",
            send_to_logfire=self.logfire.enabled,
            token=self.logfire.token if self.logfire.enabled else None,
            console=console,
            additional_span_processors=processors or None,
        )

    def log(self, level: str, msg: str, **kwargs):
        """Log ``msg`` at a level given by name (spew ... fatal)."""
        import logfire
        logfire.log(
            level=LEVELS.get(level, level),
            msg_template=msg,
            attributes=kwargs or None,
        )

    def spew(self, msg: str, **kwargs):
        """Below trace: subprocess plumbing and other noise."""
        self.log('spew', msg, **kwargs)

    def trace(self, msg: str, **kwargs):
        self.log('trace', msg, **kwargs)

    def debug(self, msg: str, **kwargs):
        self.log('debug', msg, **kwargs)

    def info(self, msg: str, **kwargs):
        self.log('info', msg, **kwargs)

    def warn(self, msg: str, **kwargs):
        self.log('warn', msg, **kwargs)

    def warning(self, msg: str, **kwargs):
        self.log('warn', msg, **kwargs)

    def error(self, msg: str, **kwargs):
        self.log('error', msg, **kwargs)

    def span(self, msg: str, **kwargs):
        """Context manager grouping the messages logged inside it."""
        import logfire
        return logfire.span(msg, **kwargs)

    def __getattr__(self, name):
        import logfire
        return getattr(logfire, name)


def setup_logger(
    log_root: Path,
    run_name: str,
    level: str = "info",
    console: ConsoleSink | None = None,
    otlp: OTLPSink | None = None,
    file: FileSink | None = None,
    logfire: LogfireSink | None = None,
) -> Logger:
    """Replace the Logger behind ``logger`` and start its sinks.

    The previous Logger, if any, is closed first. Config calls this
    once the configuration is loaded; tests call it directly.
    """
    global _current_logger

    if _current_logger is not None:
        _current_logger.close()

    _current_logger = Logger(
        level=level,
        console=console or ConsoleSink(),
        otlp=otlp or OTLPSink(),
        file=file or FileSink(),
        logfire=logfire or LogfireSink(),
    )
    _current_logger.setup(log_root, run_name)
    return _current_logger
