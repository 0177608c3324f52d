"""HTTP layer: FastAPI application, routers and the OpenAPI export script."""
