"""Building blocks for the OpenAPI description served at /openapi.json."""
