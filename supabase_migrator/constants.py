"""Shared constants for the Supabase project migration tool."""

from __future__ import annotations

# HTTP status codes
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403
HTTP_RATE_LIMIT = 429
HTTP_SERVER_ERROR_MIN = 500

# Request timeouts in seconds
DEFAULT_TIMEOUT = 60
TRANSFER_TIMEOUT = 300

# Storage API
STORAGE_API_PATH = "/storage/v1"
LIST_PAGE_SIZE = 1000
BUCKET_EXISTS_MARKER = "already exists"

# Management API
MANAGEMENT_API_URL = "https://api.supabase.com"
DEFAULT_ENTRYPOINT = "index.ts"
FUNCTION_METADATA_FIELD = "metadata"

# Transfers
DEFAULT_CONCURRENCY = 4

# Database tooling
DEFAULT_PG_DUMP = "pg_dump"
DEFAULT_PSQL = "psql"
DEFAULT_DB_PORT = 5432
DEFAULT_DB_USER = "postgres"
DEFAULT_DB_NAME = "postgres"
MANAGED_OBJECTS_TABLE = "storage.objects"
IMPORT_ERROR_MARKER = "ERROR"

# Backup layout
BACKUP_METADATA_FILE = "metadata.json"
DUMP_FILE = "database.sql"
COMPRESSED_DUMP_FILE = "database.sql.gz"
STORAGE_DIR = "storage"
FUNCTIONS_DIR = "functions"
BACKUP_TIMESTAMP_FORMAT = "%Y%m%d_%H%M%S"

# Logger name shared by every module
LOGGER_NAME = "supabase_migrator"
