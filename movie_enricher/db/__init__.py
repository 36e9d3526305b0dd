"""SQLite persistence: connections, schema, repositories, and the store facade."""
