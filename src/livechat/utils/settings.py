from dotenv import find_dotenv, load_dotenv
from pydantic_settings import BaseSettings

load_dotenv(find_dotenv(usecwd=True), override=True)


class Settings(BaseSettings):
    """Settings for the FastAPI application."""

    model_config = {
        "env_file": find_dotenv(usecwd=True),
        "env_file_encoding": "utf-8",
        "case_sensitive": True,
        "extra": "ignore",
    }

    MONGODB_URI: str = "mongodb://localhost:27017"
    JWT_SECRET: str
    CLIENT_URL: str = ""
    LOG_LEVEL: str = "INFO"


SETTINGS = Settings()
