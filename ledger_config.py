# ledger_config.py
"""
Ledger configuration for Miller Mitra.

Bag weights and conversion ratios used by every ledger computation. Values
come from the environment (``.env``) and fall back to the standard mill
figures below. Pass a ``LedgerConfig`` into calculations instead of
reading module constants.
"""

import os
from dataclasses import dataclass, field
from typing import List

from dotenv import load_dotenv

load_dotenv()

DEFAULT_SEASONS = ["2024-2025", "2023-2024"]
DEFAULT_GEMINI_MODEL = "gemini-2.5-flash"

# Upload limits for extracted documents
MAX_UPLOAD_BYTES = 5 * 1024 * 1024
PDF_MIME_TYPES = ["application/pdf"]
SLIP_MIME_TYPES = ["image/jpeg", "image/png", "image/webp", "application/pdf"]

AGENCIES = ["FCI", "MPSCSC"]


@dataclass(frozen=True)
class LedgerConfig:
    new_bag_weight_g: float = 580.0
    used_bag_weight_g: float = 500.0
    cmr_turnout_ratio: float = 0.67
    frk_blend_ratio: float = 0.01
    rice_bag_weight_qtl: float = 0.5
    # Used as the average paddy bag weight until any bags have been lifted
    paddy_bag_weight_qtl: float = 0.4
    tolerance: float = 0.001
    seasons: List[str] = field(default_factory=lambda: list(DEFAULT_SEASONS))


_ENV_FIELDS = {
    "new_bag_weight_g": "NEW_BAG_WEIGHT_G",
    "used_bag_weight_g": "USED_BAG_WEIGHT_G",
    "cmr_turnout_ratio": "CMR_TURNOUT_RATIO",
    "frk_blend_ratio": "FRK_BLEND_RATIO",
    "rice_bag_weight_qtl": "RICE_BAG_WEIGHT_QTL",
    "paddy_bag_weight_qtl": "PADDY_BAG_WEIGHT_QTL",
    "tolerance": "LEDGER_TOLERANCE",
}


def _env_float(var_name: str, default: float) -> float:
    raw = os.getenv(var_name)
    if raw is None or not raw.strip():
        return default
    try:
        value = float(raw)
    except ValueError:
        raise ValueError(f"{var_name} must be a number, got '{raw}'")
    if value < 0:
        raise ValueError(f"{var_name} cannot be negative")
    return value


def load_ledger_config() -> LedgerConfig:
    """Build the ledger configuration from the environment."""
    defaults = LedgerConfig()
    values = {
        attr: _env_float(var_name, getattr(defaults, attr))
        for attr, var_name in _ENV_FIELDS.items()
    }
    raw_seasons = os.getenv("DEFAULT_SEASONS", "")
    seasons = [s.strip() for s in raw_seasons.split(",") if s.strip()] or list(DEFAULT_SEASONS)
    return LedgerConfig(seasons=seasons, **values)


def gemini_settings() -> dict:
    """API key, model name and timeout for document extraction."""
    return {
        "api_key": os.getenv("GEMINI_API_KEY") or os.getenv("API_KEY") or "",
        "model": os.getenv("GEMINI_MODEL", DEFAULT_GEMINI_MODEL),
        "timeout": _env_float("GEMINI_TIMEOUT", 60.0),
    }


def backup_dir() -> str:
    return os.getenv("BACKUP_DIR", "backups")
