"""Browse S3-compatible object storage as a file tree."""
