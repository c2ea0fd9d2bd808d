"""Localize remote images referenced from JavaScript/TypeScript sources."""
