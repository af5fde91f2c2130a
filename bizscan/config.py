# bizscan/config.py
from dotenv import load_dotenv
import os

load_dotenv()


def _csv_env(name: str, default: str = "") -> list:
    raw = os.getenv(name, default) or ""
    return [part.strip() for part in raw.split(",") if part.strip()]


# API Keys (comma separated, tried in order)
OPENROUTER_API_KEYS = _csv_env("OPENROUTER_API_KEY")
DISCORD_WEBHOOK_URL = os.getenv("DISCORD_WEBHOOK_URL")

# Models, in priority order
VISION_MODELS = _csv_env(
    "VISION_MODELS",
    "google/gemini-2.0-flash-lite-001,qwen/qwen2.5-vl-72b-instruct:free,google/gemma-3-27b-it:free",
)
REVIEW_MODELS = _csv_env(
    "REVIEW_MODELS",
    "deepseek/deepseek-chat-v3-0324:free,meta-llama/llama-3.2-3b-instruct",
)
CONTACT_MODEL = os.getenv("CONTACT_MODEL", "google/gemini-2.0-flash-lite-001")

# Runtime parameters
EXTRACTION_TIMEOUT = float(os.getenv("EXTRACTION_TIMEOUT", "60"))
PROBE_TIMEOUT = float(os.getenv("PROBE_TIMEOUT", "5"))
RATE_LIMIT_BACKOFF = float(os.getenv("RATE_LIMIT_BACKOFF", "0.5"))
INTER_ITEM_DELAY = float(os.getenv("INTER_ITEM_DELAY", "2"))
MAX_RETRIES = int(os.getenv("MAX_RETRIES", "3"))
CONCURRENCY = 20
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Image compression
IMAGE_MAX_DIMENSION = 1200
IMAGE_QUALITY = 80
COMPRESS_THRESHOLD_BYTES = 500 * 1024

# Approval sessions
APPROVAL_TTL = 5 * 60

# Placeholder for fields enrichment could not confirm
UNCONFIRMED = "확인필요"

# URLs
OPENROUTER_URL = "https://openrouter.ai/api/v1"
SITE_URL = os.getenv("SITE_URL", "https://bizscan.vercel.app")
PUBLIC_BASE_URL = os.getenv("PUBLIC_BASE_URL", SITE_URL)
DDANGYO_URL = "https://boss.ddangyo.com/o2o/shop/cm/requestIsBizRegNoTemp"
YOGIYO_URL = "https://ceo-api.yogiyo.co.kr/join/validate-company-number/"
COUPANGEATS_URL = "https://store.coupangeats.com/api/v1/merchant/web/businessregistration/verify"

# File names
INPUT_DIR = os.getenv("INPUT_DIR", "certificates")
OUTPUT_XLSX = os.getenv("OUTPUT_XLSX", "bizscan_results.xlsx")
