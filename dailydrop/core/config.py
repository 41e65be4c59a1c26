import os
from dotenv import load_dotenv

load_dotenv()  # Load from .env file

DATABASE_URL = os.getenv("DATABASE_URL", "sqlite:///./dailydrop.db")

# OpenAI
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")
OPENAI_CHAT_MODEL = os.getenv("OPENAI_CHAT_MODEL", "gpt-4o-mini")

# Analysis eligibility
ANALYSIS_MIN_ENTRIES = int(os.getenv("ANALYSIS_MIN_ENTRIES", "3"))
ANALYSIS_COOLDOWN_MINUTES = int(os.getenv("ANALYSIS_COOLDOWN_MINUTES", "30"))
ENTRY_MIN_TEXT_LENGTH = int(os.getenv("ENTRY_MIN_TEXT_LENGTH", "10"))

# Generation request shape
ANALYSIS_MAX_TOKENS = int(os.getenv("ANALYSIS_MAX_TOKENS", "3000"))
ANALYSIS_TEMPERATURE = float(os.getenv("ANALYSIS_TEMPERATURE", "0.3"))

# Generation retry / timeout / rate limit
GENERATION_MAX_RETRIES = int(os.getenv("GENERATION_MAX_RETRIES", "2"))
GENERATION_TIMEOUT_SECONDS = float(os.getenv("GENERATION_TIMEOUT_SECONDS", "30"))
GENERATION_RETRY_BASE_SECONDS = float(os.getenv("GENERATION_RETRY_BASE_SECONDS", "1.0"))
GENERATION_RETRY_MULTIPLIER = float(os.getenv("GENERATION_RETRY_MULTIPLIER", "2"))
GENERATION_MIN_INTERVAL_SECONDS = float(os.getenv("GENERATION_MIN_INTERVAL_SECONDS", "1.0"))

# Comma-separated list of allowed frontend origins
CORS_ALLOW_ORIGINS = [o.strip() for o in os.getenv("CORS_ALLOW_ORIGINS", "http://localhost:3000").split(",") if o.strip()]
