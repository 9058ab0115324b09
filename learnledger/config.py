import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from .env (only for local development)
if os.getenv("FLASK_ENV") != "production":
    load_dotenv()


class Config:
    """Base configuration."""

    # General settings
    SECRET_KEY = os.getenv("SECRET_KEY", "default-secret-key")

    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URL", "postgresql://postgres@localhost:5432/learnledger")
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "default-jwt-secret-key")
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(days=int(os.getenv("JWT_ACCESS_TOKEN_EXPIRES_DAYS", "7")))

    # CORS configuration
    CORS_ORIGINS = [
        origin.strip() for origin in os.getenv("CORS_ORIGINS", "").split(",") if origin.strip()
    ]

    # Debug mode
    DEBUG = os.getenv("FLASK_ENV") != "production"
    LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG" if DEBUG else "INFO")

    # Default and ceiling page sizes for project listings
    PROJECTS_PAGE_SIZE = 20
    PROJECTS_MAX_PAGE_SIZE = 100

    # How many projects /projects/suggested returns
    SUGGESTED_PROJECTS_LIMIT = 5


class TestingConfig(Config):
    TESTING = True
    DEBUG = False
    LOG_LEVEL = "WARNING"
    SQLALCHEMY_DATABASE_URI = "sqlite://"
    JWT_SECRET_KEY = "test-jwt-secret-key-with-enough-length"
    BCRYPT_LOG_ROUNDS = 4
