"""Server-side storage and API for permission overrides."""
