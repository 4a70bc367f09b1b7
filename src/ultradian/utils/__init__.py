"""Shared utilities for ultradian."""
