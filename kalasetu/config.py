import os
from dataclasses import dataclass

DEFAULT_TIMEOUT = 15.0


@dataclass(frozen=True)
class Settings:
    api_url: str = "http://localhost:5000/api"
    api_token: str = ""
    data_path: str = "kalasetu_data.json"
    # Seconds before a backend round-trip is abandoned with ``Timeout``
    request_timeout: float = DEFAULT_TIMEOUT


def _timeout_from_env() -> float:
    raw = os.getenv("KALASETU_REQUEST_TIMEOUT", "").strip()
    try:
        value = float(raw)
    except ValueError:
        return DEFAULT_TIMEOUT
    return value if value > 0 else DEFAULT_TIMEOUT


def load_settings() -> Settings:
    api_url = os.getenv("KALASETU_API_URL", "").strip()
    return Settings(
        api_url=(api_url or Settings.api_url).rstrip("/"),
        api_token=os.getenv("KALASETU_API_TOKEN", "").strip(),
        data_path=os.getenv("KALASETU_DATA_PATH", "").strip() or Settings.data_path,
        request_timeout=_timeout_from_env(),
    )
