"""Persistence for recorded classifications and campaign traces."""
