"""Application constants."""

USER_AGENT = "nsw-sales-publisher/0.3 (+static-artifacts)"

MASTER_INDEX_ARTIFACT = "master-address-index.json"
MANIFEST_ARTIFACT = "manifest.json"
ADDRESS_DIR = "addresses"
README_ARTIFACT = "README.md"

SALE_RECORD_PREFIX = "B;"
FIELD_DELIMITER = ";"
MIN_FIELD_COUNT = 20
MIN_SALE_PRICE = 1000
MAX_SALE_PRICE = 50_000_000

DEFAULT_RECORDS_PER_CHUNK = 5000
DEFAULT_MAX_ARCHIVE_DEPTH = 8
ADDRESS_HASH_LENGTH = 12

ADDRESS_CANDIDATE_LIMIT = 20
ADDRESS_YEARS_PER_CANDIDATE = 3
ADDRESS_FALLBACK_CHUNKS = 3
PRICE_SEARCH_YEARS = 3
PRICE_SEARCH_CHUNKS = 5
MIN_ADDRESS_QUERY_LENGTH = 3

EXIT_SUCCESS = 0
EXIT_PARTIAL = 10
EXIT_HARD_FAIL = 20

JSON_LOG_FIELDS = (
    "timestamp",
    "run_id",
    "stage",
    "archive",
    "year",
    "event",
    "status",
    "records_in",
    "records_out",
    "rejected",
    "duration_ms",
    "error_code",
    "message",
)
