"""URL and content helpers."""
