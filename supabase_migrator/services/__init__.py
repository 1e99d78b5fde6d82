"""HTTP clients for the Supabase APIs and the object transfer engine."""

__all__ = [
    "function_sync",
    "functions_client",
    "http",
    "local_store",
    "storage_client",
    "transfer",
]
