"""Aggregates AI tool announcements from public sources into one deduplicated catalog."""
