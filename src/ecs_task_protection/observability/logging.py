from __future__ import annotations

import logging
import sys
from typing import Optional

from ecs_task_protection.settings import get_settings


def configure_logging(level: Optional[str] = None) -> None:
    log_level = (level or get_settings().log_level).upper()
    logging.basicConfig(
        level=log_level,
        format="%(asctime)s [%(levelname)s] %(name)s - %(message)s",
        stream=sys.stderr,
    )
    # botocore is chatty at DEBUG and logs request signing details
    if log_level != "DEBUG":
        logging.getLogger("botocore").setLevel(logging.WARNING)
