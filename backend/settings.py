"""Organization-specific configuration: header aliases, retake prefixes, fee rates."""
from typing import Dict, List

from pydantic import BaseModel, Field

import storage
from aggregation import DEFAULT_RETAKE_PREFIXES
from models import FeeRates
from normalizer import DEFAULT_ALIASES


class AppSettings(BaseModel):
    aliases: Dict[str, str] = Field(default_factory=lambda: dict(DEFAULT_ALIASES))
    retake_prefixes: List[str] = Field(default_factory=lambda: list(DEFAULT_RETAKE_PREFIXES))
    fee_rates: FeeRates = Field(default_factory=FeeRates)


def load_app_settings() -> AppSettings:
    """Stored settings, or the defaults when none were saved yet."""
    data = storage.load_settings()
    if not data:
        return AppSettings()
    return AppSettings(**data)
