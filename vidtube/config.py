import os
from datetime import timedelta
from dotenv import load_dotenv

# Load environment variables from a .env file if it exists
load_dotenv()
# SECURITY: avoid printing secrets / connection strings in stdout


class Config:
    # Default to False; individual env config classes can override
    DEBUG = False
    TESTING = False
    MY_ENVIRONMENT = "PRODUCTION"
    SECRET_KEY = os.getenv("SECRET_KEY", "your_secret_key")
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///app.db")
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "your_jwt_secret")

    # JWT settings
    JWT_TOKEN_LOCATION = ["headers", "cookies"]
    JWT_ACCESS_COOKIE_NAME = "accessToken"
    REFRESH_COOKIE_NAME = "refreshToken"
    # Harden cookie defaults (can be relaxed for local dev)
    JWT_COOKIE_SECURE = os.getenv("JWT_COOKIE_SECURE", "true").lower() == "true"
    JWT_COOKIE_CSRF_PROTECT = os.getenv("JWT_COOKIE_CSRF_PROTECT", "true").lower() == "true"
    # Access short-lived; refresh long-lived
    JWT_ACCESS_TOKEN_EXPIRES = timedelta(minutes=int(os.getenv("JWT_ACCESS_TOKEN_MINUTES", "60")))
    REFRESH_TOKEN_EXPIRES_MINUTES = int(os.getenv("REFRESH_TOKEN_EXPIRES_MINUTES", "43200"))  # 30 days default

    CORS_ORIGIN = os.getenv("CORS_ORIGIN", "*")

    # Media host (Cloudinary)
    CLOUDINARY_CLOUD_NAME = os.getenv("CLOUDINARY_CLOUD_NAME", "")
    CLOUDINARY_API_KEY = os.getenv("CLOUDINARY_API_KEY", "")
    CLOUDINARY_API_SECRET = os.getenv("CLOUDINARY_API_SECRET", "")
    MEDIA_FOLDER = os.getenv("MEDIA_FOLDER", "vidtube")

    # Multipart files are staged here before being pushed to the media host
    UPLOAD_TEMP_DIR = os.getenv("UPLOAD_TEMP_DIR", os.path.join(os.getcwd(), "public", "temp"))

    # Upload hardening
    MAX_CONTENT_LENGTH_MB = int(os.getenv("MAX_CONTENT_LENGTH_MB", "600"))  # global cap
    MAX_CONTENT_LENGTH = MAX_CONTENT_LENGTH_MB * 1024 * 1024

    RATELIMIT_ENABLED = os.getenv("RATELIMIT_ENABLED", "true").lower() == "true"
    REDIS_URL = os.getenv("REDIS_URL")

    LOG_DIR = os.getenv("LOG_DIR", "logs")

    # Auto-run migrations at startup if set (safe for dev containers / CI). Accepts: true/1/yes
    AUTO_MIGRATE_ON_STARTUP = os.getenv("AUTO_MIGRATE_ON_STARTUP", "false").lower() in ("1", "true", "yes")


class DevelopmentConfig(Config):
    DEBUG = True
    SQLALCHEMY_DATABASE_URI = os.getenv("DEVELOPMENT_DATABASE_URI", "sqlite:///dev.db")
    MY_ENVIRONMENT = "DEVELOPMENT"
    # Permit insecure cookies in dev for convenience
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False


class TestingConfig(Config):
    TESTING = True
    MY_ENVIRONMENT = "TESTING"
    SQLALCHEMY_DATABASE_URI = os.getenv("TEST_DATABASE_URI", "sqlite:///:memory:")
    JWT_SECRET_KEY = os.getenv("JWT_SECRET_KEY", "test-secret-key-with-enough-length!")
    JWT_COOKIE_SECURE = False
    JWT_COOKIE_CSRF_PROTECT = False
    RATELIMIT_ENABLED = False
    CLOUDINARY_CLOUD_NAME = "test-cloud"
    CLOUDINARY_API_KEY = "test-key"
    CLOUDINARY_API_SECRET = "test-secret"


class ProductionConfig(Config):
    SQLALCHEMY_DATABASE_URI = os.getenv("DATABASE_URI", "sqlite:///prod.db")
    MY_ENVIRONMENT = "PRODUCTION"
