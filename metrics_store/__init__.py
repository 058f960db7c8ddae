"""In-memory store for machine-health telemetry, served over HTTP."""
