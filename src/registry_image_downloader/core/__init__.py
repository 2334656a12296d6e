"""Core registry client, session and configuration types."""
