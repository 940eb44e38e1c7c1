from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_ignore_empty=True)

    DATABASE_URL: str = "sqlite:///./pantry.db"
    SQLITE_IMMEDIATE_TRANSACTIONS: bool = True

    LOG_LEVEL: str = "INFO"

    PURCHASES_SHEET_NAME: str = "Purchases"
    AUTO_SHOPPING_LIST_NAME: str = "Auto-Generated"

    # auto_merge: SKU -> specific store -> generic -> stage
    # stage_only: every purchase lands in the Purchases sheet for manual sorting
    INVENTORY_MERGE_POLICY: Literal["auto_merge", "stage_only"] = "auto_merge"

    TITLE_CASE_ACRONYMS: list[str] = [
        "TV", "DVD", "USB", "PC", "AC", "DC", "LED", "LCD", "HD", "SD", "AM", "PM",
    ]
    MERGED_RAW_TEXT_SEPARATOR: str = " | "

    # used for taxable lines at stores without their own tax_rate
    DEFAULT_STATE_TAX_RATES: dict[str, Decimal] = {"IN": Decimal("0.07"), "MI": Decimal("0.06")}

    TX_MAX_ATTEMPTS: int = 3
    TX_RETRY_BASE_SECONDS: float = 0.05


settings = Settings()
