"""HTTP handlers for the feedback stream API."""
