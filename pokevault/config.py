from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment."""

    model_config = SettingsConfigDict(env_file=".env")

    app_name: str = "PokeVault"
    debug: bool = False

    database_url: str = "postgresql+asyncpg://localhost:5432/pokevault"

    # Pricing provider (Pokemon Price Tracker). Empty key = not configured.
    pokemon_api_key: str = ""
    pricing_api_base_url: str = "https://www.pokemonpricetracker.com/api/v1"

    # Artwork provider (TCGdex)
    artwork_api_base_url: str = "https://api.tcgdex.net/v2/en"

    # Every upstream call is bounded by this timeout
    upstream_timeout_seconds: float = 10.0

    cache_duration_seconds: int = 3600
    cache_max_entries: int = 5000
    sets_cache_duration_seconds: int = 86400

    daily_api_limit: int = 200
    minute_api_limit: int = 60

    # TCGdex is unauthenticated but still gets its own budget
    artwork_daily_limit: int = 5000
    artwork_minute_limit: int = 300

    portfolio_write_retries: int = 3

    # In-process price refresh; shares the pricing budget with requests
    price_refresh_enabled: bool = True
    price_refresh_interval_seconds: int = 21600


settings = Settings()


# =============================================================================
# PRICING API QUOTA DEFAULTS
# =============================================================================

# Shared across all users of the process
DAILY_LIMIT = 200
MINUTE_LIMIT = 60

MINUTE_WINDOW_SECONDS = 60

# Cached prices and images are fresh for one hour
CACHE_DURATION_SECONDS = 3600
