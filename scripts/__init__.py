"""
Parks Matching Scripts Package

This package contains the park linking job, the matching core it shares with
the API, and database persistence, organized into logical subdirectories:

- processors/: Name/location similarity, park linking and proximity matching
- database/: Database writing for park links
"""
