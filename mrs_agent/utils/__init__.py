"""Shared utilities: errors, logging, scheduling and helpers."""
