"""
Unit test fixtures. Services run against the in-memory database from the
root conftest; no HTTP app is involved.
"""
