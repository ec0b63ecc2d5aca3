from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application configuration settings"""
    
    # Application
    app_name: str = "Online Test Session Service"
    debug: bool = False
    api_version: str = "v1"
    log_level: str = "INFO"
    
    # Server
    host: str = "0.0.0.0"
    port: int = 8000
    
    # Upstream REST collaborator
    api_base_url: str = "http://localhost:8080/api"
    students_path: str = "/students/"
    question_bank_path: str = "/get_all_mcq/"
    submit_path: str = "/submit_multiple_mcq/"
    
    # Bounds a stalled fetch; expiry surfaces as a retryable NetworkFailure
    request_timeout_seconds: float = 15.0
    
    # CORS
    cors_origins: str = "http://localhost:5173,http://localhost:3000"
    
    @property
    def cors_origins_list(self) -> list[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]
    
    class Config:
        env_file = ".env"
        case_sensitive = False
        extra = "ignore"


# Global settings instance
settings = Settings()
