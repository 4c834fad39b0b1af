"""HTTP layer: routes, error handlers, middleware and streaming response."""
