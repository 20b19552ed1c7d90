import os
from functools import lru_cache
from typing import Mapping, Optional

from dotenv import load_dotenv
from pydantic import BaseModel

# Required identifiers, keyed by the settings field they populate
REQUIRED_ENV = {
    "endpoint": "APPWRITE_ENDPOINT",
    "project_id": "APPWRITE_PROJECT_ID",
    "database_id": "APPWRITE_DATABASE_ID",
    "galleries_collection_id": "APPWRITE_GALLERIES_COLLECTION_ID",
    "reviews_collection_id": "APPWRITE_REVIEWS_COLLECTION_ID",
    "agents_collection_id": "APPWRITE_AGENTS_COLLECTION_ID",
    "properties_collection_id": "APPWRITE_PROPERTIES_COLLECTION_ID",
    "bookings_collection_id": "APPWRITE_BOOKINGS_COLLECTION_ID",
    "bucket_id": "APPWRITE_BUCKET_ID",
}

OPTIONAL_ENV = {
    "platform": "APPWRITE_PLATFORM",
    "api_key": "APPWRITE_API_KEY",
    "oauth_provider": "APPWRITE_OAUTH_PROVIDER",
}


class ConfigurationError(Exception):
    """Raised when required Appwrite identifiers are absent from the environment."""

    def __init__(self, missing):
        self.missing = list(missing)
        super().__init__(
            f"Missing the following Appwrite environment IDs: {', '.join(self.missing)}. "
            "Please check your .env file or deployment setup."
        )


class AppwriteSettings(BaseModel):
    endpoint: str
    project_id: str
    database_id: str
    galleries_collection_id: str
    reviews_collection_id: str
    agents_collection_id: str
    properties_collection_id: str
    bookings_collection_id: str
    bucket_id: str
    platform: str = "com.jsm.restate"
    api_key: Optional[str] = None
    oauth_provider: str = "google"

    @property
    def session_cookie_name(self) -> str:
        return f"a_session_{self.project_id}"


def load_settings(environ: Optional[Mapping[str, str]] = None) -> AppwriteSettings:
    """
    Builds the settings from environment variables (a .env file is loaded first
    when reading the process environment). Identifiers are checked for presence
    only; every missing one is reported in a single error.
    """
    if environ is None:
        load_dotenv()
        environ = os.environ

    values = {}
    missing_config = []
    for field, env_name in REQUIRED_ENV.items():
        value = environ.get(env_name)
        if not value:
            missing_config.append(env_name)
        values[field] = value

    if missing_config:
        raise ConfigurationError(missing_config)

    for field, env_name in OPTIONAL_ENV.items():
        value = environ.get(env_name)
        if value:
            values[field] = value

    return AppwriteSettings(**values)


@lru_cache()
def get_settings() -> AppwriteSettings:
    return load_settings()
