import os
from typing import Optional
from pydantic_settings import BaseSettings

class Settings(BaseSettings):
    """Application settings using Pydantic BaseSettings"""

    # DynamoDB
    DDB_TABLE_NAME: str = os.getenv("DDB_TABLE_NAME", "worthwatch")
    AWS_REGION: str = os.getenv("AWS_REGION", "us-east-1")
    DYNAMODB_ENDPOINT: Optional[str] = os.getenv("DYNAMODB_ENDPOINT")  # LocalStack / DynamoDB Local
    STORE_CONNECT_TIMEOUT: float = float(os.getenv("STORE_CONNECT_TIMEOUT", "2"))
    STORE_READ_TIMEOUT: float = float(os.getenv("STORE_READ_TIMEOUT", "5"))
    STORE_MAX_ATTEMPTS: int = int(os.getenv("STORE_MAX_ATTEMPTS", "3"))

    # Cognito
    USER_POOL_ID: str = os.getenv("USER_POOL_ID", "")
    USER_POOL_CLIENT_ID: str = os.getenv("USER_POOL_CLIENT_ID", "")
    JWKS_CACHE_TTL_SECONDS: int = int(os.getenv("JWKS_CACHE_TTL_SECONDS", "600"))
    JWKS_MIN_REFRESH_SECONDS: int = int(os.getenv("JWKS_MIN_REFRESH_SECONDS", "30"))
    JWKS_FETCH_TIMEOUT: float = float(os.getenv("JWKS_FETCH_TIMEOUT", "5"))

    # HTTP
    CORS_ALLOW_ORIGINS: Optional[str] = os.getenv("CORS_ALLOW_ORIGINS")

    # Environment
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    ENVIRONMENT: str = os.getenv("ENVIRONMENT", "development")
    DEBUG: bool = os.getenv("DEBUG", "True").lower() == "true"

    @property
    def COGNITO_ISSUER(self) -> str:
        return f"https://cognito-idp.{self.AWS_REGION}.amazonaws.com/{self.USER_POOL_ID}"

    @property
    def JWKS_URL(self) -> str:
        return f"{self.COGNITO_ISSUER}/.well-known/jwks.json"

    class Config:
        env_file = ".env"
        case_sensitive = True
        extra = "ignore"

# Singleton instance
_settings: Optional[Settings] = None

def get_settings() -> Settings:
    """Get settings singleton instance"""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
