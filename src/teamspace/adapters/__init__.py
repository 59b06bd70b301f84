"""Adapters implementing the core storage and audit protocols."""
