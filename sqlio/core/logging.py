"""Logging setup for the ``sqlio`` logger hierarchy."""

import logging
import sys

from json_log_formatter import JSONFormatter

# Record attributes rendered ahead of the context, with their display names.
_RECORD_FIELDS = (("worker", "worker"), ("bundle_id", "bundle"))


def configure_logging(level: str = "INFO", json_format: bool = False) -> None:
    """Send ``sqlio`` log records to stdout.

    Calling it again replaces the previous handler.

    Args:
        level: Level name such as DEBUG or WARNING; unknown names mean INFO
        json_format: Emit one JSON document per record instead of key=value text
    """
    log_level = getattr(logging, level.upper(), logging.INFO)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(log_level)
    handler.setFormatter(JSONFormatter() if json_format else StructuredFormatter())

    logger = logging.getLogger("sqlio")
    logger.handlers.clear()
    logger.setLevel(log_level)
    logger.addHandler(handler)


class StructuredFormatter(logging.Formatter):
    """Formats records as ``[LEVEL] key=value ... message``.

    Keys come from the ``worker`` and ``bundle_id`` extras followed by the
    entries of the ``context`` extra.
    """

    def format(self, record: logging.LogRecord) -> str:
        fields = [
            f"{label}={getattr(record, attr)}"
            for attr, label in _RECORD_FIELDS
            if hasattr(record, attr)
        ]
        fields.extend(f"{key}={value}" for key, value in getattr(record, "context", {}).items())

        text = " ".join([f"[{record.levelname}]", *fields, record.getMessage()])
        if record.exc_info:
            text += "\n" + self.formatException(record.exc_info)
        return text
