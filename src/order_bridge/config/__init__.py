"""Configuration module - Settings, constants and reply texts."""
