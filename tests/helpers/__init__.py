"""
Test helper utilities for ultradian testing.

This module provides reusable utilities for:
- Generating synthetic rhythm data
- In-memory stand-ins for the event and profile stores
"""
