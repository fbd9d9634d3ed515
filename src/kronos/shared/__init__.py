"""Shared building blocks: errors, logging, constants."""
