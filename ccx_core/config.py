#!/usr/bin/env python3
from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional
from dotenv import load_dotenv

load_dotenv()

@dataclass
class Config:
    """Application configuration"""
    rates_api_url: str = os.getenv("CCX_RATES_API", "https://api.frankfurter.app")
    rates_ttl_ms: int = int(os.getenv("CCX_RATES_TTL_MS", "3600000"))
    rates_timeout: float = float(os.getenv("CCX_RATES_TIMEOUT", "10"))
    worker_url: Optional[str] = os.getenv("CCX_WORKER_URL") or None
    workspace: Path = Path(os.getenv("CCX_WORKSPACE", "./workspace"))
    store_path: Optional[Path] = Path(os.environ["CCX_STORE_PATH"]) if os.getenv("CCX_STORE_PATH") else None
    locale: str = os.getenv("CCX_LOCALE", "en_US")

    # Scan scheduling
    scan_debounce_ms: int = int(os.getenv("CCX_SCAN_DEBOUNCE_MS", "400"))
    idle_timeout_ms: int = int(os.getenv("CCX_IDLE_TIMEOUT_MS", "1000"))

    # Browser (annotate command)
    headless: bool = os.getenv("CCX_HEADLESS", "true").lower() in ["true", "1", "yes"]
    navigation_timeout_ms: int = int(os.getenv("CCX_NAVIGATION_TIMEOUT_MS", "30000"))

    # Logging
    log_level: str = os.getenv("CCX_LOG_LEVEL", "INFO").upper()
    log_dir: Path = Path(os.getenv("CCX_LOG_DIR", "./logs"))

    # Worker server
    api_port: int = int(os.getenv("CCX_API_PORT", "8010"))

    @property
    def scan_debounce(self) -> float:
        return self.scan_debounce_ms / 1000.0

    @property
    def idle_timeout(self) -> float:
        return self.idle_timeout_ms / 1000.0


config = Config()
