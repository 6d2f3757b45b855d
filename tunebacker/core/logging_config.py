import logging
import sys


def configure_logging(level: int | str = logging.INFO) -> None:
    """
    Configure root logging for the service.

    - Logs go to stdout
    - Time, level and logger name on every line
    - Installed once; later calls only adjust the level (uvicorn may already
      have attached its own handlers)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    root = logging.getLogger()

    if root.handlers:
        root.setLevel(level)
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            "%(asctime)s [%(levelname)s] %(name)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )

    root.addHandler(handler)
    root.setLevel(level)
