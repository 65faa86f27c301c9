"""Configuration management for the cost report explorer."""
