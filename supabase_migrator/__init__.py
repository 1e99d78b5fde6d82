#!/usr/bin/env python3
"""
Supabase project migration tool
"""

__version__ = "0.1.0"

# Import the main classes and functions for easier access
from supabase_migrator.core.config import load_config
from supabase_migrator.core.migrator import ProjectMigrator
from supabase_migrator.services.transfer import transfer_storage
