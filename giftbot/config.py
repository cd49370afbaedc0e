from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    bot_token: str
    db_dsn: str
    webapp_url: str

    cryptopay_api_key: str
    cryptopay_api_endpoint: str = "https://pay.crypt.bot/api"
    invoice_expires_in: int = 3600

    web_host: str = "0.0.0.0"
    web_port: int = 4610

    # окно свежести вебхука Crypto Pay, секунды
    webhook_max_age: int = 300
    # срок жизни initData мини-приложения, секунды
    init_data_max_age: int = 86400

    log_level: str = "INFO"

    class Config:
        env_file = ".env"
