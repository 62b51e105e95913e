"""Vault writers: Local REST API and ``obsidian://`` URI handoff."""
