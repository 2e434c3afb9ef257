"""Synchronize the local stage 3 proposal dataset with upstream GitHub data."""
