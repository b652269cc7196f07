"""SQLite persistence: schema, engine setup, and reference counters."""
