import os
from dotenv import load_dotenv

load_dotenv()

class Config:
    DB_HOST = os.getenv("DB_HOST", "localhost")
    DB_PORT = int(os.getenv("DB_PORT", "3306"))
    DB_USER = os.getenv("DB_USER", "repricer_user")
    DB_PASSWORD = os.getenv("DB_PASSWORD", "repricer_password")
    DB_NAME = os.getenv("DB_NAME", "repricer_db")
    DB_CONNECT_TIMEOUT = int(os.getenv("DB_CONNECT_TIMEOUT", "10"))
    DB_READ_TIMEOUT = int(os.getenv("DB_READ_TIMEOUT", "30"))

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    DEFAULT_TARGET_MARGIN_PCT = float(os.getenv("DEFAULT_TARGET_MARGIN_PCT", "25"))
    MINIMUM_MARGIN_PCT = float(os.getenv("MINIMUM_MARGIN_PCT", "15"))
    PROPOSAL_CHANGE_THRESHOLD_PCT = float(os.getenv("PROPOSAL_CHANGE_THRESHOLD_PCT", "1.0"))
    PROPOSAL_TTL_DAYS = int(os.getenv("PROPOSAL_TTL_DAYS", "30"))
    SALES_VELOCITY_WINDOW_DAYS = int(os.getenv("SALES_VELOCITY_WINDOW_DAYS", "7"))

    DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "50"))
    MAX_PAGE_SIZE = int(os.getenv("MAX_PAGE_SIZE", "500"))

    CHANNEL_API_URL = os.getenv("CHANNEL_API_URL", "https://api.channelengine.net/api/v2")
    CHANNEL_API_KEY = os.getenv("CHANNEL_API_KEY", "")
    CHANNEL_TIMEOUT_SECONDS = float(os.getenv("CHANNEL_TIMEOUT_SECONDS", "30"))
    CHANNEL_BATCH_SIZE = int(os.getenv("CHANNEL_BATCH_SIZE", "100"))
