"""Interview workflow services: scoring, registry, merging, generation helpers."""
