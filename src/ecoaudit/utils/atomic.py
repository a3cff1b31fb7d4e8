"""
Atomic JSON report writing.

Reports are written to a temporary file in the target directory and moved
into place with ``os.replace``, so a reader never sees a half-written report.
"""

from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

import structlog

logger = structlog.get_logger(__name__)

TEMP_PREFIX = ".ecoaudit_"


def write_json_atomic(data: Any, path: Union[str, Path]) -> bool:
    """
    Serialize ``data`` to ``path`` atomically.

    Returns:
        bool: True if the report was written, False otherwise (logged).
    """
    path = Path(path)
    try:
        content = json.dumps(data, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as e:
        logger.warning("Cannot serialize report", path=str(path), error=str(e))
        return False

    temp_path = None
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(dir=path.parent, prefix=f"{TEMP_PREFIX}{path.name}.", suffix=".tmp")
        temp_path = Path(temp_name)
        with os.fdopen(fd, "w", encoding="utf-8") as handle:
            handle.write(content)
        os.replace(temp_path, path)
    except OSError as e:
        logger.warning("Report write failed", path=str(path), error=str(e))
        return False
    finally:
        if temp_path is not None and temp_path.exists():
            temp_path.unlink(missing_ok=True)

    logger.debug("Report written", path=str(path), bytes=len(content))
    return True

