"""Configuration management."""
import os
from dotenv import load_dotenv

# Load environment variables
load_dotenv()


class Config:
    """Application configuration."""
    
    # Database
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = os.getenv("DB_PORT", "5432")
    DB_NAME = os.getenv("DB_NAME", "bookstore")
    DB_USER = os.getenv("DB_USER", "bookstore")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "bookstore123")
    DB_POOL_SIZE = int(os.getenv("DB_POOL_SIZE", "10"))
    DB_POOL_TIMEOUT = float(os.getenv("DB_POOL_TIMEOUT", "5"))
    DB_CONNECT_RETRIES = int(os.getenv("DB_CONNECT_RETRIES", "5"))
    DB_CONNECT_DELAY = float(os.getenv("DB_CONNECT_DELAY", "5"))
    
    @property
    def DATABASE_URL(self):
        """Build PostgreSQL connection string."""
        return f"postgresql://{self.DB_USER}:{self.DB_PASSWORD}@{self.DB_HOST}:{self.DB_PORT}/{self.DB_NAME}"
    
    # Cache
    REDIS_HOST = os.getenv("REDIS_HOST", "localhost")
    REDIS_PORT = int(os.getenv("REDIS_PORT", "6379"))
    REDIS_TIMEOUT = float(os.getenv("REDIS_TIMEOUT", "1.0"))
    CACHE_TTL = int(os.getenv("CACHE_TTL", "300"))
    
    # Server
    PORT = int(os.getenv("PORT", "3000"))
    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
    CORS_ORIGINS = [o.strip() for o in os.getenv("CORS_ORIGINS", "*").split(",") if o.strip()]
