"""Repository classes over the SQLite key-value store."""
