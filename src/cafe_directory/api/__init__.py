"""HTTP API for the cafe directory."""
