from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    SERVICE_NAME: str = "Query Service"
    SERVICE_HOST: str = "0.0.0.0"
    SERVICE_PORT: int = 8080

    # Shared bearer secret, an empty value turns authorization off
    API_TOKEN: str = ""
    DEV_MODE: bool = False

    DATABASE_URL: str = "sqlite://"
    SEED_DEMO_DATA: bool = True

    # Seconds, used when a request asks for no timeout
    DEFAULT_QUERY_TIMEOUT: float = 5.0

    LOG_LEVEL: str = "INFO"

    # This tells Pydantic to read from the .env file
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")
