from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

LOG_DIR = Path("logs")


def setup_logging(level: str = "INFO", logfile: Optional[Path] = None) -> None:
    LOG_DIR.mkdir(exist_ok=True)
    logfile = logfile or LOG_DIR / "streetcam.log"
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        handlers=[
            logging.FileHandler(logfile),
            logging.StreamHandler(),
        ],
    )
