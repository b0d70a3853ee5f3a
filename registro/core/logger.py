"""Logging setup shared by the API process and the device client."""
import logging
import sys

_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"


def setup_logging(level: str = "INFO") -> None:
    """Attach a stdout handler to the root logger (idempotent)."""
    root = logging.getLogger()
    root.setLevel(level.upper())

    for handler in root.handlers:
        if getattr(handler, "_registro", False):
            handler.setLevel(level.upper())
            return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level.upper())
    console_handler.setFormatter(logging.Formatter(_FORMAT, datefmt=_DATEFMT))
    console_handler._registro = True
    root.addHandler(console_handler)

    root.debug("Logging configured")
