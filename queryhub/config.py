from pydantic_settings import BaseSettings
from pydantic import Field, field_validator
from typing import Dict, List


class Settings(BaseSettings):
    # API Configuration
    api_title: str = "QueryHub Lookup API"
    api_version: str = "v1"
    api_description: str = "Lookup proxy with protected identities and deduplicated query storage"

    # Storage Configuration
    data_dir: str = "database"
    retention_limit: int = 1000  # Records kept per query type
    query_files: Dict[str, str] = Field(
        default_factory=lambda: {
            "identity": "identity-queries.json",
            "fullName": "fullname-queries.json",
            "phoneNumber": "phonenumber-queries.json",
        }
    )
    index_file: str = "index.json"
    protection_file: str = "protected-users.json"

    # Gateway Configuration
    max_concurrent_requests: int = 50
    upstream_timeout_seconds: float = 30.0
    mask_rejection_latency: bool = True
    rejection_latency_cap_seconds: float = 5.0
    count_rejected_queries: bool = False

    # Stats Configuration
    history_size: int = 200
    last_queries_size: int = 10

    # Upstream Configuration
    upstream_base_url: str = "https://world-ecletix.onrender.com/api"
    upstream_paths: Dict[str, str] = Field(
        default_factory=lambda: {
            "identity": "/consultarcpf",
            "fullName": "/nome-completo",
            "phoneNumber": "/numero",
        }
    )
    upstream_params: Dict[str, str] = Field(
        default_factory=lambda: {
            "identity": "cpf",
            "fullName": "q",
            "phoneNumber": "q",
        }
    )

    # Authentication
    admin_password: str = "change-me"
    session_cookie_name: str = "admin_session"
    session_max_age_seconds: int = 3600

    # CORS
    cors_allow_origins: str = "*"  # Store as string, convert to list

    @field_validator("retention_limit", "history_size", "max_concurrent_requests")
    @classmethod
    def must_be_positive(cls, v):
        if v < 1:
            raise ValueError("must be greater than 0")
        return v

    @property
    def cors_allow_origins_list(self) -> List[str]:
        """Get allowed CORS origins as a list"""
        return [origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip()]

    class Config:
        env_file = ".env"
        env_prefix = "QUERYHUB_"


settings = Settings()
