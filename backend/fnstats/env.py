from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterable, List, Optional

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

BACKEND_DIR = Path(__file__).resolve().parents[1]


def env_candidates() -> List[Path]:
    """``backend/.env`` first, then the repository root ``.env``."""
    return [BACKEND_DIR / ".env", BACKEND_DIR.parent / ".env"]


def load_env(candidates: Optional[Iterable[Path]] = None) -> List[Path]:
    """Load every existing candidate file into ``os.environ``.

    Variables already set in the process win. Defaults are not applied here;
    ``Settings.from_env`` owns them. Returns the files that were loaded.
    """
    loaded = [path for path in (candidates or env_candidates()) if path.exists()]
    for path in loaded:
        load_dotenv(path)
    if not loaded:
        load_dotenv()
    logger.debug(f"Loaded environment from {[str(path) for path in loaded] or 'process'}")
    return loaded
