"""Business domains exposed by the API."""
