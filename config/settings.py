"""
GEMRECALL — Runtime Settings & Logging

Environment-driven knobs for the tools and the HTTP driver. The rules engine
itself takes everything through constructor arguments; only the outer
layers read these.

    LOG_LEVEL              logging level for the gemrecall.* loggers (INFO)
    GEMRECALL_SEED         fixed RNG seed for reproducible sessions (unset = random)
    GEMRECALL_DIFFICULTY   override of the economy's default difficulty
    MC_SESSIONS            Monte Carlo sessions per validation run (2000)
    MC_TOLERANCE           allowed |measured - target| RTP delta (0.05)
    API_HOST / API_PORT    bind address of web_app.py (127.0.0.1:5000)
"""

import logging
import os
from typing import Optional

from dotenv import load_dotenv

load_dotenv()

LOG_FORMAT = "[%(asctime)s] %(levelname)s %(name)s %(message)s"


def _int_or_none(raw: Optional[str]) -> Optional[int]:
    if raw is None or raw.strip() == "":
        return None
    return int(raw)


class EngineSettings:

    LOG_LEVEL   = os.getenv("LOG_LEVEL", "INFO").upper()
    SEED        = _int_or_none(os.getenv("GEMRECALL_SEED"))
    DIFFICULTY  = os.getenv("GEMRECALL_DIFFICULTY") or None

    # --- Monte Carlo ---
    MC_SESSIONS  = int(os.getenv("MC_SESSIONS", "2000"))
    MC_TOLERANCE = float(os.getenv("MC_TOLERANCE", "0.05"))

    # --- HTTP driver ---
    API_HOST = os.getenv("API_HOST", "127.0.0.1")
    API_PORT = int(os.getenv("API_PORT", "5000"))

    @classmethod
    def summary(cls) -> dict:
        return {
            "log_level": cls.LOG_LEVEL,
            "seed": cls.SEED,
            "difficulty": cls.DIFFICULTY,
            "mc_sessions": cls.MC_SESSIONS,
            "mc_tolerance": cls.MC_TOLERANCE,
            "api": f"{cls.API_HOST}:{cls.API_PORT}",
        }


def configure_logging(level: Optional[str] = None) -> logging.Logger:
    """Attach one stream handler to the `gemrecall` logger tree (idempotent)."""
    logger = logging.getLogger("gemrecall")
    logger.setLevel((level or EngineSettings.LOG_LEVEL).upper())
    if not logger.handlers:
        _h = logging.StreamHandler()
        _h.setFormatter(logging.Formatter(LOG_FORMAT, datefmt="%H:%M:%S"))
        logger.addHandler(_h)
    return logger
