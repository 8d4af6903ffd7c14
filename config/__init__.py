"""Configuration helpers for the sheet client."""
