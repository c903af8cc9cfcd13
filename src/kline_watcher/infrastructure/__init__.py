"""Cross-cutting infrastructure: configuration, database, observability."""
