# propmatch/config.py
from dotenv import load_dotenv
import os

load_dotenv()

# API Keys
ZYTE_API_KEY = os.getenv("ZYTE_API_KEY")
OPENAI_API_KEY = os.getenv("OPENAI_API_KEY")

# Matching parameters
MATCH_THRESHOLD = 50
GOOD_MATCH_THRESHOLD = 40
PLACEHOLDER_ADDRESSES = (
    "address to be determined",
    "address not available",
    "address unavailable",
    "n/a",
)
PLACEHOLDER_ADDRESS = "Address to be determined"

# Runtime parameters
BATCH_SIZE = 5
CONCURRENCY = 10
REQUEST_TIMEOUT = 120
LOG_LEVEL = os.getenv("LOG_LEVEL", "DEBUG")
OPENAI_MODEL = "gpt-4o-mini"

# Cache durations (seconds)
CACHE_DURATIONS = {
    "competitor_properties": 60 * 60,
    "unit_details": 24 * 60 * 60,
    "property_search": 30 * 60,
}

# URLs
LISTINGS_DOMAIN = "apartments.com"
LISTINGS_BASE_URL = "https://www.apartments.com"
ZYTE_URL = "https://api.zyte.com/v1/extract"

# File names
INPUT_CSV = "properties.csv"
OUTPUT_CSV = "subject_matches.csv"
DB_PATH = os.getenv("PROPMATCH_DB_PATH", "")
