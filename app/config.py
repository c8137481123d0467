from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    port: int = 8080

    # Capture timeouts (milliseconds)
    screenshot_operation_timeout: int = 300000
    capture_session_timeout: int = 0  # 0 disables page-level timeouts

    # Browser pool
    screenshot_max_concurrent: int = 3
    browser_viewport_width: int = 1920
    browser_viewport_height: int = 1080
    browser_user_agent: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )

    # Capture behavior
    inline_document_url: str = "http://localhost"
    response_url_max_length: int = 1000
    scroll_step_interval: int = 100
    scroll_bottom_threshold: int = 400
    scroll_settle_delay: int = 1000

    # Rate limiting
    rate_limit: str = "100/15minutes"

    # CORS
    allowed_origins: list[str] = ["*"]

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}


settings = Settings()
