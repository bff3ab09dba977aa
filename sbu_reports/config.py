"""
Config settings.
"""
import os
from dotenv import load_dotenv

load_dotenv()

# Chat endpoint
CHAT_API_BASE_URL = os.getenv("CHAT_API_BASE_URL", "")
CHAT_API_KEY = os.getenv("CHAT_API_KEY", "")
CHAT_AGENT = os.getenv("CHAT_AGENT", "ChatBot2")
CHAT_TIMEOUT = float(os.getenv("CHAT_TIMEOUT", "60"))
CHAT_MAX_SESSIONS = int(os.getenv("CHAT_MAX_SESSIONS", "500"))

# Report API (consumed by ReportApiClient)
REPORT_API_URL = os.getenv("REPORT_API_URL", "http://localhost:3001/api/reports")
REPORT_TIMEOUT = float(os.getenv("REPORT_TIMEOUT", "10"))

# Tickets
TICKET_ID_PREFIX = os.getenv("TICKET_ID_PREFIX", "SBU")
TICKET_ID_SEED = int(os.getenv("TICKET_ID_SEED", "8394"))
DEFAULT_PAGE_SIZE = int(os.getenv("DEFAULT_PAGE_SIZE", "10"))
SEED_REPORTS = os.getenv("SEED_REPORTS", "true").lower() in ("1", "true", "yes")

# Server
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
PORT = int(os.getenv("PORT", "3001"))
