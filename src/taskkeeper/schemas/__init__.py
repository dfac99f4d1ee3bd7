"""Request and response bodies for the HTTP API."""
