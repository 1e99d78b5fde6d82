#!/usr/bin/env python3
"""
Main execution module for the Supabase project migration tool
"""

from supabase_migrator.cli.commands import main

if __name__ == "__main__":
    main()
