import os
from functools import lru_cache
from typing import Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Pick up a local .env before reading the environment
load_dotenv()


class Settings(BaseModel):
    db_path: str = "data/database.json"
    log_level: str = "INFO"

    whatsapp_api_url: str = "https://graph.facebook.com/v17.0"
    whatsapp_access_token: Optional[str] = None
    whatsapp_phone_number_id: Optional[str] = None

    print_agent_url: str = "http://localhost:4321/print"
    # prefixed to relative pdf links sent outside the dashboard
    public_base_url: str = "http://localhost:8000"
    http_timeout: float = 10.0


_ENV_VARS = {
    "db_path": "BILLING_DB_PATH",
    "log_level": "LOG_LEVEL",
    "whatsapp_api_url": "WHATSAPP_API_URL",
    "whatsapp_access_token": "WHATSAPP_ACCESS_TOKEN",
    "whatsapp_phone_number_id": "WHATSAPP_PHONE_NUMBER_ID",
    "print_agent_url": "PRINT_AGENT_URL",
    "public_base_url": "PUBLIC_BASE_URL",
    "http_timeout": "HTTP_TIMEOUT",
}


@lru_cache
def get_settings() -> Settings:
    values = {
        field: os.environ[var]
        for field, var in _ENV_VARS.items()
        if os.environ.get(var)
    }
    return Settings(**values)
