from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "CardSwap"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/cardswap"

    # When True, the calculator loads only holdings that share a card id with
    # the owner. When False, it scans up to match_population_limit profiles.
    use_card_index: bool = True

    match_population_limit: int = 1000

    notification_list_limit: int = 50

    card_catalog_url: str = "https://api.riftcodex.com"


settings = Settings()


# =============================================================================
# MATCHING LIMITS
# =============================================================================

# Upper bound on profiles loaded by the full-scan population loader
MATCH_POPULATION_HARD_LIMIT = 1000

# Upper bound on records returned to the notification dropdown
NOTIFICATION_LIST_HARD_LIMIT = 200
