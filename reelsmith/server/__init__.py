"""HTTP service: project store, pipeline coordinator and FastAPI routes."""
