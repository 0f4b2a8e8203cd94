"""Application configuration with environment-based settings."""
import os
from typing import Optional
from dotenv import load_dotenv


class Config:
    """Base configuration class following Single Responsibility Principle."""
    
    # Load environment variables
    load_dotenv()
    
    # Amadeus (reservation system) Configuration
    AMADEUS_API_BASE_URL: str = os.getenv("AMADEUS_API_BASE_URL", "https://test.api.amadeus.com")
    AMADEUS_CLIENT_ID: Optional[str] = os.getenv("AMADEUS_CLIENT_ID")
    AMADEUS_CLIENT_SECRET: Optional[str] = os.getenv("AMADEUS_CLIENT_SECRET")
    AMADEUS_TIMEOUT: int = int(os.getenv("AMADEUS_TIMEOUT", "30"))
    
    # Stripe (payment gateway) Configuration
    STRIPE_API_BASE_URL: str = os.getenv("STRIPE_API_BASE_URL", "https://api.stripe.com")
    STRIPE_SECRET_KEY: Optional[str] = os.getenv("STRIPE_SECRET_KEY")
    STRIPE_TIMEOUT: int = int(os.getenv("STRIPE_TIMEOUT", "30"))
    PUBLIC_BASE_URL: str = os.getenv("PUBLIC_BASE_URL", "http://localhost:3000")
    PAYMENT_SUCCESS_URL: str = os.getenv("PAYMENT_SUCCESS_URL", f"{PUBLIC_BASE_URL}/payment-success")
    PAYMENT_CANCEL_URL: str = os.getenv("PAYMENT_CANCEL_URL", f"{PUBLIC_BASE_URL}/booking")
    DEFAULT_CURRENCY: str = os.getenv("DEFAULT_CURRENCY", "usd")
    
    # Checkout timers (seconds)
    FLIGHT_HOLD_SECONDS: int = int(os.getenv("FLIGHT_HOLD_SECONDS", "1200"))  # 20 minutes
    PASSENGER_RETENTION_SECONDS: int = int(os.getenv("PASSENGER_RETENTION_SECONDS", "1200"))  # 20 minutes
    AVAILABILITY_FRESHNESS_SECONDS: int = int(os.getenv("AVAILABILITY_FRESHNESS_SECONDS", "600"))  # 10 minutes
    SCHEDULER_TICK_SECONDS: float = float(os.getenv("SCHEDULER_TICK_SECONDS", "1.0"))
    
    # Provider selection
    RESERVATION_PROVIDER: str = os.getenv("RESERVATION_PROVIDER", "amadeus")
    PAYMENT_PROVIDER: str = os.getenv("PAYMENT_PROVIDER", "stripe")
    SESSION_STORAGE_TYPE: str = os.getenv("SESSION_STORAGE_TYPE", "redis")
    
    # Agency metadata sent with every reservation
    AGENCY_NAME: str = os.getenv("AGENCY_NAME", "INCREIBLE VIAJES")
    AGENCY_CONTACT_FIRST_NAME: str = os.getenv("AGENCY_CONTACT_FIRST_NAME", "PABLO")
    AGENCY_CONTACT_LAST_NAME: str = os.getenv("AGENCY_CONTACT_LAST_NAME", "RODRIGUEZ")
    AGENCY_EMAIL: str = os.getenv("AGENCY_EMAIL", "support@increibleviajes.es")
    AGENCY_PHONE: str = os.getenv("AGENCY_PHONE", "480080071")
    AGENCY_PHONE_COUNTRY_CODE: str = os.getenv("AGENCY_PHONE_COUNTRY_CODE", "34")
    AGENCY_ADDRESS_LINE: str = os.getenv("AGENCY_ADDRESS_LINE", "Calle Prado, 16")
    AGENCY_POSTAL_CODE: str = os.getenv("AGENCY_POSTAL_CODE", "28014")
    AGENCY_CITY: str = os.getenv("AGENCY_CITY", "Madrid")
    AGENCY_COUNTRY_CODE: str = os.getenv("AGENCY_COUNTRY_CODE", "ES")
    TICKETING_DELAY: str = os.getenv("TICKETING_DELAY", "6D")
    DEFAULT_COUNTRY_CALLING_CODE: str = os.getenv("DEFAULT_COUNTRY_CALLING_CODE", "34")
    
    # Redis Configuration
    REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
    REDIS_SESSION_TTL: int = int(os.getenv("REDIS_SESSION_TTL", "3600"))  # 1 hour default
    
    # Rate Limiting
    RATELIMIT_STORAGE_URL: str = os.getenv("RATELIMIT_STORAGE_URL", "redis://localhost:6379/2")
    RATELIMIT_ENABLED: bool = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    
    # Monitoring
    SENTRY_DSN: Optional[str] = os.getenv("SENTRY_DSN")
    ENABLE_METRICS: bool = os.getenv("ENABLE_METRICS", "true").lower() == "true"
    
    # Application
    DEBUG: bool = os.getenv("DEBUG", "false").lower() == "true"
    TESTING: bool = False
    SECRET_KEY: str = os.getenv("SECRET_KEY", "dev-secret-key-change-in-production")
    
    @classmethod
    def validate(cls) -> None:
        """Validate required configuration values."""
        required_vars = []
        if cls.RESERVATION_PROVIDER == "amadeus":
            required_vars += [
                ("AMADEUS_CLIENT_ID", cls.AMADEUS_CLIENT_ID),
                ("AMADEUS_CLIENT_SECRET", cls.AMADEUS_CLIENT_SECRET),
            ]
        if cls.PAYMENT_PROVIDER == "stripe":
            required_vars.append(("STRIPE_SECRET_KEY", cls.STRIPE_SECRET_KEY))
        
        missing = [name for name, value in required_vars if not value]
        if missing:
            raise ValueError(f"Missing required environment variables: {', '.join(missing)}")


class DevelopmentConfig(Config):
    """Development configuration."""
    DEBUG = True


class ProductionConfig(Config):
    """Production configuration."""
    DEBUG = False


class TestingConfig(Config):
    """Testing configuration."""
    TESTING = True
    REDIS_URL = "redis://localhost:6379/15"  # Use different DB for tests
    RESERVATION_PROVIDER = "mock"
    PAYMENT_PROVIDER = "mock"
    SESSION_STORAGE_TYPE = "memory"
    RATELIMIT_ENABLED = False
    RATELIMIT_STORAGE_URL = "memory://"
    ENABLE_METRICS = False
    SENTRY_DSN = None


def get_config() -> type[Config]:
    """Factory method to get configuration based on environment."""
    env = os.getenv("FLASK_ENV", "development").lower()
    
    config_map = {
        "development": DevelopmentConfig,
        "production": ProductionConfig,
        "testing": TestingConfig,
    }
    
    return config_map.get(env, DevelopmentConfig)
