"""HTTP API for knowledge interviews."""
