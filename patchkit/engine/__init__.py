"""Patch parsing, locating and mutation for the V4A and SEARCH/REPLACE formats."""
