"""HTTP API request and response schemas."""
