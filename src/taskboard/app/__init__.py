"""FastAPI application package for the task board service."""
