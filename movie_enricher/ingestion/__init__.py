"""Local catalog and ratings import from CSV files."""
