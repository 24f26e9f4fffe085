from functools import lru_cache

from pydantic_settings import BaseSettings

from skinplan.schemas import PriceTier


class Settings(BaseSettings):
    """Application settings"""
    # Catalogs (None means use the built-in ones)
    product_catalog_path: str | None = None
    rule_catalog_path: str | None = None

    default_budget: PriceTier = PriceTier.MID
    log_level: str = "INFO"

    class Config:
        env_file = '.env'


@lru_cache
def get_settings() -> Settings:
    return Settings()
