from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', extra='ignore')

    app_name: str = 'Tuition Desk'
    app_env: str = 'local'
    app_timezone: str = 'Asia/Dhaka'
    database_url: str = 'sqlite:///./tuition_desk.db'
    auth_secret: str = 'change-me'
    auth_cookie_name: str = 'auth_session'
    auth_session_max_age_seconds: int = 60 * 60 * 24 * 30
    student_id_prefix: str = 'EHA'
    student_id_max_attempts: int = 5
    dashboard_max_workers: int = 8
    attendance_rate_window_days: int = 30
    dashboard_month_buckets: int = 6
    db_slow_query_ms: int = 100
    metrics_slow_ms: int = 200


settings = Settings()
