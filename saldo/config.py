from pydantic import field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    telegram_bot_token: str
    allowed_chat_ids: list[int] = []

    @field_validator("allowed_chat_ids", mode="before")
    @classmethod
    def parse_chat_ids(cls, v):
        if isinstance(v, str):
            return [int(x.strip()) for x in v.split(",") if x.strip()]
        if isinstance(v, int):
            return [v]
        return v

    # "anthropic", "huggingface" or "fallback"; picked from the credentials when unset
    completion_provider: str | None = None
    anthropic_api_key: str | None = None
    claude_model: str = "haiku"
    hf_api_key: str | None = None
    hf_api_url: str = "https://api-inference.huggingface.co/models"
    hf_model: str = "mistralai/Mistral-7B-Instruct-v0.2"
    completion_timeout: float = 10.0
    completion_max_tokens: int = 500
    completion_temperature: float = 0.7
    max_prompt_length: int = 2000
    chat_history_limit: int = 5

    overspend_threshold: float = 0.15
    overspend_high_threshold: float = 0.40
    commitment_threshold: float = 0.70
    high_expense_threshold: float = 5000
    dominant_category_share: float = 0.30
    savings_rate: float = 0.30
    due_soon_days: int = 7

    base_currency: str = "BRL"
    db_path: str = "saldo.db"
    rate_limit_per_hour: int = 30
    debug: bool = False
    health_check_port: int = 8080


settings = Settings()
