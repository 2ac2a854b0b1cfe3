"""Core building blocks: scheduling and configuration."""
