"""Vault deposit monitor application package."""
