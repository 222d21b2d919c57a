"""Commerce domain API package."""
