from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

DEFAULT_API_URL = "https://retdec.com/service/api"


@dataclass(frozen=True)
class Settings:
    api_key: str | None
    api_url: str
    poll_interval_s: float
    request_timeout_s: int
    output_dir: Path

    @staticmethod
    def from_env() -> "Settings":
        api_key = os.getenv("RETDEC_API_KEY")
        api_url = os.getenv("RETDEC_API_URL", DEFAULT_API_URL).rstrip("/")
        # The service asks clients not to poll more often than every 15 seconds.
        poll_interval_s = float(os.getenv("RETDEC_POLL_INTERVAL_S", "15"))
        request_timeout_s = int(os.getenv("RETDEC_REQUEST_TIMEOUT_S", "300"))
        output_dir = Path(os.getenv("RETDEC_OUTPUT_DIR", ".")).resolve()
        return Settings(
            api_key=api_key,
            api_url=api_url,
            poll_interval_s=poll_interval_s,
            request_timeout_s=request_timeout_s,
            output_dir=output_dir,
        )


settings = Settings.from_env()
