from __future__ import annotations

from functools import cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[1]
ARTIFACTS_DIR = PROJECT_ROOT / "artifacts"


class AppSettings(BaseSettings):
    etherscan_api_key: str = ""
    wallet_address: str = ""
    chains_file: Path | None = None
    ledger_dir: Path = ARTIFACTS_DIR / "exportedTransactions"
    balances_file: Path = ARTIFACTS_DIR / "final-balances.csv"
    amount_decimals: int = Field(default=6, ge=6, le=18)
    page_size: int = Field(default=10_000, gt=0)
    max_workers: int = Field(default=4, gt=0)
    request_delay_seconds: float = Field(default=0.25, ge=0)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")


@cache
def config() -> AppSettings:
    return AppSettings()
