"""Core domain: sessions, authorization and resource lifecycle."""
