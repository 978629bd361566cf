from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv


def _flag(value: Optional[str], default: bool) -> bool:
    if value is None or not value.strip():
        return default
    return value.strip().lower() not in ("0", "false", "no", "off")


@dataclass
class AppConfig:
    airtable_base_url: str = "https://api.airtable.com/v0"
    airtable_base_id: Optional[str] = None
    airtable_api_key: Optional[str] = None
    request_timeout: float = 10.0
    max_records: int = 100
    # Airtable responses are reused for this long
    cache_duration_seconds: float = 300.0
    use_cache: bool = True
    enable_history: bool = True
    history_limit: int = 50
    parsed_history_limit: int = 20
    log_level: str = "INFO"

    @property
    def airtable_enabled(self) -> bool:
        return bool(self.airtable_base_id and self.airtable_api_key)


def load_config(env_path: Optional[str] = None) -> AppConfig:
    if env_path:
        load_dotenv(env_path)
    else:
        load_dotenv()
    return AppConfig(
        airtable_base_url=os.getenv("AIRTABLE_BASE_URL", "https://api.airtable.com/v0"),
        airtable_base_id=os.getenv("AIRTABLE_BASE_ID"),
        airtable_api_key=os.getenv("AIRTABLE_API_KEY"),
        request_timeout=float(os.getenv("AIRTABLE_TIMEOUT", "10")),
        max_records=int(os.getenv("AIRTABLE_MAX_RECORDS", "100")),
        cache_duration_seconds=float(os.getenv("CACHE_DURATION_SECONDS", "300")),
        use_cache=_flag(os.getenv("USE_CACHE"), True),
        enable_history=_flag(os.getenv("ENABLE_HISTORY"), True),
        history_limit=int(os.getenv("HISTORY_LIMIT", "50")),
        parsed_history_limit=int(os.getenv("PARSED_HISTORY_LIMIT", "20")),
        log_level=os.getenv("LOG_LEVEL", "INFO"),
    )
