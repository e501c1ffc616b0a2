"""Data model and event schema. Snapshot I/O lives in :mod:`search_coverage.data.io_utils`."""
