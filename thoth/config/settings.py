"""
Configuration Settings.
"""

from pydantic_settings import BaseSettings
from typing import List


class Settings(BaseSettings):
    """Client settings."""

    # App info
    app_name: str = "Thoth"
    app_version: str = "1.0.0"
    debug: bool = False

    # Backend
    api_base_url: str = "http://localhost:8000"
    request_timeout: float = 30.0  # seconds, chat queries and authenticated calls
    login_timeout: float = 10.0  # seconds, /token exchange

    # Routing
    login_path: str = "/login"
    register_path: str = "/register"
    forgot_password_path: str = "/forgot-password"
    default_landing_path: str = "/dashboard"
    chat_path: str = "/chat"
    static_prefixes: List[str] = ["/_next", "/static", "/api", "/icons"]

    # Session persistence
    local_storage_path: str = "./data"
    cookie_max_age_days: int = 7
    fetch_profile_on_login: bool = True

    # Chat
    title_max_length: int = 50
    default_title: str = "New Chat"
    query_model: str = "gpt-3.5-turbo"
    query_max_tokens: int = 1024
    query_temperature: float = 0.7

    # Notifications
    notification_history_size: int = 20
    notification_ttl_seconds: float = 5.0

    # Logging configuration
    log_level: str = "INFO"  # DEBUG, INFO, WARNING, ERROR, CRITICAL
    log_file_path: str = "./logs/thoth.log"
    log_file_enabled: bool = False
    log_console_enabled: bool = True
    log_json_format: bool = True  # JSON format for files, human-readable for console
    log_api_requests: bool = True  # Log all backend requests/responses

    class Config:
        env_file = ".env"
        case_sensitive = False

    @property
    def public_paths(self) -> List[str]:
        """Paths reachable without a session."""
        return [self.login_path, self.register_path, self.forgot_password_path]

    @property
    def auth_form_paths(self) -> List[str]:
        """Public paths that authenticated users are bounced away from."""
        return [self.login_path, self.register_path]


settings = Settings()
