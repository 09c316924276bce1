"""Registry access: references, authentication and the HTTP client."""
