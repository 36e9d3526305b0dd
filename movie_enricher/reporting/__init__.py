"""Terminal formatting and file export for enrichment and recommendation output."""
