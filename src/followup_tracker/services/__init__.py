"""Application services coordinating validation and persistence."""
