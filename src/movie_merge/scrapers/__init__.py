"""
Provider scrapers: Archive.org collections and YouTube channels.

Each scraper yields ``CanonicalEntry`` objects keyed by a temporary key,
ready for the ingest pipeline.
"""
