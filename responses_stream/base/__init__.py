"""Shared building blocks: data model, chunks, errors, logging, resilience."""
