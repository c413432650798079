"""
Central configuration for the MathViz analyzer.
All settings are driven by environment variables with safe defaults.
"""

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # LLM (optional descriptor source)
    anthropic_api_key: str = ""
    llm_model: str = "claude-haiku-4-5-20251001"
    llm_max_tokens: int = 2000
    llm_temperature: float = 0.0
    use_llm_parser: bool = False

    # Math oracle
    oracle_backend: str = "sympy"            # sympy | wolfram
    wolfram_app_id: str = ""
    wolfram_api_url: str = "https://api.wolframalpha.com/v1/result"
    oracle_timeout_seconds: float = 15.0

    # Analysis
    default_axis_min: float = -10.0
    default_axis_max: float = 10.0
    max_questions: int = 3
    max_practice_questions: int = 4
    max_problem_chars: int = 4000            # API rejects longer input; LLM parser truncates

    # Rendering props handed to the frontend
    render_width: int = 800
    render_height: int = 600

    # Logging
    log_level: str = "INFO"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        extra = "ignore"

    def default_axis(self) -> list[float]:
        return [self.default_axis_min, self.default_axis_max]


settings = Settings()
