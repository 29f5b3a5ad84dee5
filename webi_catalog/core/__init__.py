"""Configuration and process-level wiring."""
