"""HTTP API for run submission."""
