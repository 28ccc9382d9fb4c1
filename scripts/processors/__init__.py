"""
Matching and Processing Scripts

This module contains the matching core and the jobs built on it:
- Name normalization and Levenshtein similarity
- Haversine distances and location similarity
- Greedy entity linking of NPS parks to Wikidata parks
- Radius-based proximity search with attribute filters
"""
