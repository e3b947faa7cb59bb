import logging
from typing import Optional


LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


def setup_logging(level: str = "INFO", log_file: Optional[str] = None) -> None:
    """Configure root logging: always to the console, and to log_file when given."""
    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=LOG_FORMAT,
        handlers=handlers,
        force=True,
    )


def truncate(text: str, limit: int = 100) -> str:
    """Shorten text for log lines."""
    return text if len(text) <= limit else text[:limit] + "..."
