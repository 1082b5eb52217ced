import os
import sys
import logging
from pathlib import Path
from datetime import datetime


def setup_logging(log_dir: str | None = None, level: int = logging.INFO) -> logging.Logger:
    """Configure console logging, plus a timestamped log file when log_dir is given."""
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]

    if log_dir:
        try:
            Path(log_dir).mkdir(parents=True, exist_ok=True)
            log_filename = f"skinscan_{datetime.now().strftime('%Y%m%d_%H%M%S')}.log"
            handlers.append(logging.FileHandler(os.path.join(log_dir, log_filename), encoding="utf-8"))
        except OSError as e:
            print(f"[ERROR] Failed to create log file in {log_dir}: {e}", file=sys.stderr)

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(name)s:%(lineno)d - %(message)s",
        handlers=handlers,
        force=True,
    )

    logger = logging.getLogger("skinscan")
    logger.info("Logging system initialized")
    return logger
