"""
Configuration management for Info Hub Aggregator Service.
Uses pydantic-settings for environment variable management.
"""

from typing import Dict, List
from pydantic import Field, validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application metadata
    app_name: str = Field(default="Info Hub Aggregator", env="APP_NAME")
    app_version: str = Field(default="1.0.0", env="APP_VERSION")
    debug: bool = Field(default=False, env="DEBUG")

    # Server configuration
    host: str = Field(default="0.0.0.0", env="HOST")
    port: int = Field(default=3000, env="PORT")
    api_prefix: str = Field(default="/api", env="API_PREFIX")
    docs_enabled: bool = Field(default=True, env="DOCS_ENABLED")

    # Logging configuration
    log_level: str = Field(default="INFO", env="LOG_LEVEL")
    log_format: str = Field(default="json", env="LOG_FORMAT")

    # Outbound HTTP transport (in seconds)
    http_timeout: float = Field(default=30.0, env="HTTP_TIMEOUT")
    http_connect_timeout: float = Field(default=10.0, env="HTTP_CONNECT_TIMEOUT")

    # QWeather signed-token credentials
    qweather_project_id: str = Field(default="", env="QWEATHER_PROJECT_ID")
    qweather_credential: str = Field(default="", env="QWEATHER_CREDENTIAL")
    qweather_private_key_path: str = Field(default="", env="QWEATHER_PRIVATE_KEY_PATH")
    qweather_token_ttl: int = Field(default=86400, env="QWEATHER_TOKEN_TTL")  # 24 hours
    qweather_token_renewal_margin: int = Field(default=300, env="QWEATHER_TOKEN_RENEWAL_MARGIN")  # 5 minutes
    qweather_clock_skew: int = Field(default=30, env="QWEATHER_CLOCK_SKEW")

    # Upstream endpoints
    open_meteo_weather_url: str = Field(
        default="https://api.open-meteo.com/v1/forecast",
        env="OPEN_METEO_WEATHER_URL"
    )
    open_meteo_air_quality_url: str = Field(
        default="https://air-quality-api.open-meteo.com/v1/air-quality",
        env="OPEN_METEO_AIR_QUALITY_URL"
    )
    qweather_geo_url: str = Field(
        default="https://geoapi.qweather.com/v2/city/lookup",
        env="QWEATHER_GEO_URL"
    )
    zenquotes_url: str = Field(default="https://zenquotes.io/api/random", env="ZENQUOTES_URL")
    exchange_rate_url: str = Field(
        default="https://api.exchangerate-api.com/v4/latest",
        env="EXCHANGE_RATE_URL"
    )
    yahoo_finance_url: str = Field(
        default="https://query1.finance.yahoo.com/v8/finance/chart",
        env="YAHOO_FINANCE_URL"
    )

    # News aggregation
    news_max_articles: int = Field(default=50, env="NEWS_MAX_ARTICLES")

    @validator('log_level')
    def validate_log_level(cls, v: str) -> str:
        """Validate log level."""
        valid_levels = {'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'}
        if v.upper() not in valid_levels:
            raise ValueError(f"log_level must be one of: {', '.join(valid_levels)}")
        return v.upper()

    @validator('log_format')
    def validate_log_format(cls, v: str) -> str:
        """Validate log format."""
        valid_formats = {'json', 'text'}
        if v.lower() not in valid_formats:
            raise ValueError(f"log_format must be one of: {', '.join(valid_formats)}")
        return v.lower()

    @validator('qweather_token_ttl')
    def validate_token_ttl(cls, v: int) -> int:
        """Token lifetime must be positive."""
        if v <= 0:
            raise ValueError("qweather_token_ttl must be positive")
        return v

    @validator('news_max_articles')
    def validate_news_max_articles(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("news_max_articles must be positive")
        return v

    class Config:
        """Pydantic configuration."""
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()


# Provider configuration
class ProviderConfig:
    """Static reference data shared by the providers and services."""

    # Market indices tracked by the indices endpoint
    MAJOR_INDICES: List[Dict[str, str]] = [
        {'symbol': '^GSPC', 'name': 'S&P 500'},
        {'symbol': '^DJI', 'name': 'Dow Jones'},
        {'symbol': '^IXIC', 'name': 'NASDAQ'},
        {'symbol': '^FTSE', 'name': 'FTSE 100'},
        {'symbol': '000001.SS', 'name': 'Shanghai Composite'},
        {'symbol': '399001.SZ', 'name': 'Shenzhen Component'}
    ]

    # RSS sources by category: source name -> feed URL
    RSS_FEEDS: Dict[str, Dict[str, str]] = {
        'technology': {
            'Hacker News': 'https://news.ycombinator.com/rss',
            'TechCrunch': 'https://techcrunch.com/feed/'
        },
        'general': {
            'BBC News': 'http://feeds.bbci.co.uk/news/rss.xml',
            'CNN Top Stories': 'http://rss.cnn.com/rss/cnn_topstories.rss'
        }
    }

    # Supported cities for weather and air quality lookups
    CITY_COORDINATES: Dict[str, Dict[str, object]] = {
        'beijing': {'name': 'Beijing', 'lat': 39.9042, 'lon': 116.4074},
        'shanghai': {'name': 'Shanghai', 'lat': 31.2304, 'lon': 121.4737},
        'shenzhen': {'name': 'Shenzhen', 'lat': 22.5431, 'lon': 114.0579},
        'hangzhou': {'name': 'Hangzhou', 'lat': 30.2741, 'lon': 120.155},
        'guangzhou': {'name': 'Guangzhou', 'lat': 23.1291, 'lon': 113.2644}
    }

    # WMO weather interpretation codes
    WEATHER_CODES: Dict[int, str] = {
        0: 'Sunny',
        1: 'Partly Cloudy',
        2: 'Cloudy',
        3: 'Overcast',
        45: 'Foggy',
        48: 'Foggy',
        51: 'Light Drizzle',
        53: 'Moderate Drizzle',
        55: 'Heavy Drizzle',
        61: 'Slight Rain',
        63: 'Moderate Rain',
        65: 'Heavy Rain',
        71: 'Slight Snow',
        73: 'Moderate Snow',
        75: 'Heavy Snow',
        80: 'Slight Rain Showers',
        81: 'Moderate Rain Showers',
        82: 'Heavy Rain Showers',
        85: 'Slight Snow Showers',
        86: 'Heavy Snow Showers',
        95: 'Thunderstorm',
        96: 'Thunderstorm with Hail',
        99: 'Thunderstorm with Hail'
    }

    # US EPA AQI bands: (upper bound inclusive, category)
    AQI_CATEGORIES = [
        (50, 'Good'),
        (100, 'Moderate'),
        (150, 'Unhealthy for Sensitive Groups'),
        (200, 'Unhealthy'),
        (300, 'Very Unhealthy')
    ]
    AQI_WORST_CATEGORY = 'Hazardous'


provider_config = ProviderConfig()
