"""Database layer for ultradian."""
