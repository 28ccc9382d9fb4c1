"""
Database Management Scripts

This module contains utilities for database operations:
- Park link table definition and creation
- Upsert and append writes for park links
"""
