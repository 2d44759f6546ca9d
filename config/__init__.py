"""Configuration package for RawdahScope (settings + logging)."""
