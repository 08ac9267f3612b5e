import logging
import sys


def configure_logging(level: str = "INFO") -> None:
    """Log to stdout with timestamps."""
    logging.basicConfig(
        stream=sys.stdout,
        level=getattr(logging, level.upper()),
        format="%(asctime)s %(name)s %(levelname)s: %(message)s",
    )
