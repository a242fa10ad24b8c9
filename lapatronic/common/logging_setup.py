"""
Controller Logging

Every module logs through get_service_logger("<service>"), which hands
out a "lapatronic.<service>" logger writing to stdout. Records are JSON
lines by default so the output can be shipped as-is; set
LAPATRONIC_LOG_FORMAT=text for human-readable lines while debugging.

Fields passed with extra={...} become top-level JSON keys.
"""

import json
import logging
import os
import sys
from datetime import datetime, timezone
from typing import Any

from .formatting import format_duration

LOGGER_NAMESPACE = "lapatronic"
TEXT_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"

# Attributes every LogRecord carries; anything else came in through extra=
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", (), None))
) | {"message", "asctime", "service", "taskName"}


class JsonFormatter(logging.Formatter):
    """One JSON object per record: time, level, service, message, extras"""

    def format(self, record: logging.LogRecord) -> str:
        payload: dict[str, Any] = {
            "ts": datetime.fromtimestamp(record.created, timezone.utc).isoformat(),
            "level": record.levelname,
            "service": getattr(record, "service", record.name),
            "message": record.getMessage(),
        }
        payload.update(
            (key, value) for key, value in vars(record).items()
            if key not in _RECORD_ATTRS
        )
        if record.exc_info:
            payload["exception"] = self.formatException(record.exc_info)
        return json.dumps(payload, default=str)


class ServiceLoggerAdapter(logging.LoggerAdapter):
    """Stamps the service name on every record, keeping caller extras"""

    def process(self, msg: str, kwargs: dict) -> tuple[str, dict]:
        kwargs["extra"] = {**kwargs.get("extra", {}), "service": self.extra["service"]}
        return msg, kwargs


def _level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO


def setup_logging(
    service_name: str,
    log_level: str = "INFO",
    json_format: bool = True,
) -> logging.Logger:
    """
    (Re)configure the "lapatronic.<service_name>" logger.

    Any handler from an earlier call is replaced, and records do not
    propagate to the root logger, so each line is written exactly once.
    """
    level = _level(log_level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    if json_format:
        handler.setFormatter(JsonFormatter())
    else:
        handler.setFormatter(logging.Formatter(TEXT_FORMAT, datefmt="%H:%M:%S"))

    logger = logging.getLogger(f"{LOGGER_NAMESPACE}.{service_name}")
    logger.setLevel(level)
    logger.handlers = [handler]
    logger.propagate = False
    return logger


def get_service_logger(service_name: str) -> ServiceLoggerAdapter:
    """Service logger configured from LAPATRONIC_LOG_LEVEL / LAPATRONIC_LOG_FORMAT"""
    logger = setup_logging(
        service_name,
        os.environ.get("LAPATRONIC_LOG_LEVEL", "INFO"),
        json_format=os.environ.get("LAPATRONIC_LOG_FORMAT", "json").lower() == "json",
    )
    return ServiceLoggerAdapter(logger, {"service": service_name})


def set_log_level(log_level: str) -> None:
    """Change the level of every lapatronic logger already created."""
    level = _level(log_level)
    prefix = f"{LOGGER_NAMESPACE}."
    for name, logger in list(logging.Logger.manager.loggerDict.items()):
        if name.startswith(prefix) and isinstance(logger, logging.Logger):
            logger.setLevel(level)
            for handler in logger.handlers:
                handler.setLevel(level)


class LogContext:
    """
    Attach fields to every record created inside the block.

    The control loop wraps each tick so its records carry the tick number:

        with LogContext(logger.logger, tick=loop.tick_count):
            ...
    """

    def __init__(self, logger: logging.Logger, **fields: Any):
        self.logger = logger
        self.fields = fields
        self._previous = None

    def __enter__(self):
        previous = self._previous = logging.getLogRecordFactory()
        fields = self.fields

        def factory(*args, **kwargs):
            record = previous(*args, **kwargs)
            record.__dict__.update(fields)
            return record

        logging.setLogRecordFactory(factory)
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        logging.setLogRecordFactory(self._previous)
        return False


# Convenience loggers for common operations
def log_energy_read(
    logger: logging.Logger,
    strategy: str,
    current_energy: float | None,
    max_energy: float | None,
    success: bool = True,
) -> None:
    """Log a sensor read"""
    if success:
        logger.debug(
            f"Read {strategy}: {current_energy} / {max_energy}",
            extra={
                "strategy": strategy,
                "current_energy": current_energy,
                "max_energy": max_energy,
            },
        )
    else:
        logger.warning(
            f"Failed to read energy via {strategy}",
            extra={"strategy": strategy},
        )


def log_actuator_write(
    logger: logging.Logger,
    channel: int,
    level: int,
    success: bool = True,
    error: str | None = None,
) -> None:
    """Log a single actuator channel write"""
    if success:
        logger.debug(
            f"Set channel {channel} = {level}",
            extra={"channel": channel, "level": level},
        )
    else:
        logger.error(
            f"Failed to set channel {channel} = {level}: {error}",
            extra={"channel": channel, "level": level, "error": error},
        )


def log_control_tick(
    logger: logging.Logger,
    percent: float,
    active: bool,
    smoothed_rate: float | None,
    execution_time_ms: float,
    time_to_empty: float | None = None,
    time_to_full: float | None = None,
) -> None:
    """Log control loop execution"""
    rate_text = f"{smoothed_rate:+.0f}EU/s" if smoothed_rate is not None else "n/a"
    if time_to_empty is not None:
        eta_text = f", empty in {format_duration(time_to_empty)}"
    elif time_to_full is not None:
        eta_text = f", full in {format_duration(time_to_full)}"
    else:
        eta_text = ""

    logger.info(
        f"Control tick: energy={percent * 100:.1f}%, "
        f"output={'ON' if active else 'OFF'}, rate={rate_text}{eta_text}, "
        f"exec={execution_time_ms:.0f}ms",
        extra={
            "percent": percent,
            "active": active,
            "smoothed_rate": smoothed_rate,
            "time_to_empty_s": time_to_empty,
            "time_to_full_s": time_to_full,
            "execution_time_ms": execution_time_ms,
        },
    )
