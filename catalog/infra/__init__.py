"""Infrastructure: logging, database, cache, events and retry."""
