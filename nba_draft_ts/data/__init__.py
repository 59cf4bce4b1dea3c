"""Raw data access."""
