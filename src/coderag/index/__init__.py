"""Vector storage, bulk indexing and search."""
