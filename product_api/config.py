# ============================================
# product_api/config.py: Service Settings
# ============================================
# Settings are read once at process start and handed to create_app(),
# which keeps them on app.state for the request dependencies.

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    MONGO_URI: str        = "mongodb://localhost:27017"
    MONGO_DB: str         = "products"
    MONGO_COLLECTION: str = "products"
    HOST: str             = "0.0.0.0"
    PORT: int             = 3000
    API_KEY: str          = "default-secret-key-123"
    PYTHON_ENV: str       = "development"
    LOG_LEVEL: str        = "INFO"

    class Config:
        env_file = ".env"

    @property
    def is_production(self) -> bool:
        return self.PYTHON_ENV == "production"
