"""Ambient configuration providers."""
