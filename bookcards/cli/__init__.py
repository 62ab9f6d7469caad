"""Command-line tools for bookcards.

- ``python -m bookcards.cli ingest "<title>"``  generate and store flashcards
- ``python -m bookcards.cli backfill``          recompute legacy book identity fields
- ``python -m bookcards.cli books``             print a page of books
"""
