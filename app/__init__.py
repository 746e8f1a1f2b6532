"""Repair portal API."""
