"""Device-side client and smoke runner for the token relay."""
