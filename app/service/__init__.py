"""Use-case layer between the HTTP routes and the token store."""
