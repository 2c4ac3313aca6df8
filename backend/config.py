"""Configuration management for the Density Pricing Engine."""
import os
import logging
from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

# Pricing defaults (overridden by the settings object of the ordering app)
BASE_PRICE = float(os.getenv("BASE_PRICE", "9.00"))
URGENCY_RATE = float(os.getenv("URGENCY_RATE", "0.30"))  # urgent = 1 + rate, flash = 1 + 2 * rate
NOTARY_FEE = float(os.getenv("NOTARY_FEE", "25.00"))
MIN_DOC_FLOOR = float(os.getenv("MIN_DOC_FLOOR", "10.00"))
HANDWRITTEN_MULTIPLIER = 1.25
UPFRONT_DISCOUNT_RATE = 0.05

# Density thresholds (words per page)
WORD_THRESHOLD_MEDIUM = int(os.getenv("WORD_THRESHOLD_MEDIUM", "100"))
WORD_THRESHOLD_HIGH = int(os.getenv("WORD_THRESHOLD_HIGH", "250"))
DOCX_WORDS_PER_PAGE = int(os.getenv("DOCX_WORDS_PER_PAGE", "250"))

# OCR escalation kicks in below this many non-whitespace characters per document
OCR_MIN_TEXT_CHARS = int(os.getenv("OCR_MIN_TEXT_CHARS", "50"))

# Concurrency
WORKER_POOL_SIZE = int(os.getenv("WORKER_POOL_SIZE", "4"))
BATCH_CONCURRENCY = int(os.getenv("BATCH_CONCURRENCY", "3"))

# External collaborators
OCR_API_URL = os.getenv("OCR_API_URL")
OCR_API_KEY = os.getenv("OCR_API_KEY")
IMAGE_TO_PDF_API_URL = os.getenv("IMAGE_TO_PDF_API_URL")
HTTP_TIMEOUT = float(os.getenv("HTTP_TIMEOUT", "120.0"))

# Logging Configuration
logging.basicConfig(
    level=getattr(logging, LOG_LEVEL),
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
