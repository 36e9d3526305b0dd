"""Repository classes: explicit SQL over a caller-owned ``sqlite3.Connection``."""
