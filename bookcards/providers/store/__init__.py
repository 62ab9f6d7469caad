"""Document store adapters.

Concrete implementation of IBookStore (bookcards/interfaces/book_store.py):
    - SQLiteBookStore  books + flashcards in a local SQLite file (aiosqlite)
"""

from bookcards.providers.store.sqlite_book_store import SQLiteBookStore

__all__ = ["SQLiteBookStore"]
