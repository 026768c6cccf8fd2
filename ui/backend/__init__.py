"""FastAPI backend exposing build and deploy actions."""
