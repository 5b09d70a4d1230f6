"""
Centralized constants for dbmcp.

Thresholds for the ad-hoc query gate, pagination ceilings and the
identifier grammar live here. Import from here instead of hardcoding values.
"""

# ===========================================================================
# Ad-hoc query validation
# ===========================================================================
MAX_QUERY_LENGTH = 50_000       # Characters, measured on the raw text
MAX_SELECT_COUNT = 10           # SELECT keywords (subqueries included)
MAX_UNION_SELECTS = 5           # SELECT branches joined by UNION
MAX_PARENTHESES_DEPTH = 20
MAX_HEX_LITERALS = 3            # 0x... literals
MAX_CHAR_FUNCTIONS = 10         # CHAR( / NCHAR( calls

# ===========================================================================
# Pagination
# ===========================================================================
DEFAULT_PAGE = 1
DEFAULT_PAGE_SIZE = 100         # Catalog listings
MAX_PAGE_SIZE = 500
DEFAULT_ROWS_PAGE_SIZE = 50     # Table row browsing
MAX_ROWS_PAGE_SIZE = 1000

# ===========================================================================
# Free-form query results
# ===========================================================================
DEFAULT_MAX_ROWS = 100
MAX_ROWS_LIMIT = 10_000
MAX_BINARY_DISPLAY_BYTES = 1000  # Larger blobs are summarized, not decoded

# ===========================================================================
# SQL identifiers
# ===========================================================================
MAX_IDENTIFIER_LENGTH = 127
IDENTIFIER_PATTERN = r"^[a-zA-Z0-9_#@$]+$"

# ===========================================================================
# Column cache
# ===========================================================================
COLUMN_CACHE_TTL_S = 60
COLUMN_CACHE_MAXSIZE = 256
