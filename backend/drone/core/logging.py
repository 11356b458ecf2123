import logging
from pathlib import Path
from typing import Optional

from .config import settings

def setup_logging(level: Optional[str] = None, logs_dir: Optional[Path] = None) -> None:
    logs_dir = Path(logs_dir or settings.logs_dir)
    logs_dir.mkdir(parents=True, exist_ok=True)
    log_file = logs_dir / "drone.log"

    fmt = "%(asctime)s | %(levelname)s | %(name)s | %(message)s"
    logging.basicConfig(
        level=(level or settings.log_level).upper(),
        format=fmt,
        handlers=[logging.FileHandler(log_file), logging.StreamHandler()],
    )
