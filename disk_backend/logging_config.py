import logging
from logging.handlers import TimedRotatingFileHandler
from pathlib import Path

LOG_FORMAT = "[%(asctime)s] [%(levelname)s] [%(name)s] %(message)s"


def configure_logging(level: str = "INFO", log_dir: str = "") -> None:
    root = logging.getLogger()
    root.setLevel(level.upper())
    formatter = logging.Formatter(LOG_FORMAT)

    if not any(getattr(handler, "_disk_backend", False) for handler in root.handlers):
        console = logging.StreamHandler()
        console.setFormatter(formatter)
        console._disk_backend = True
        root.addHandler(console)

        if log_dir:
            path = Path(log_dir)
            path.mkdir(parents=True, exist_ok=True)
            # One file per day, like the production deployment expects.
            file_handler = TimedRotatingFileHandler(
                path / "disk_backend.log", when="midnight", backupCount=30, utc=True
            )
            file_handler.setFormatter(formatter)
            file_handler._disk_backend = True
            root.addHandler(file_handler)
