"""bookcards: turn a book title into persisted study flashcards.

A title goes in, an LLM writes question/answer cards, and the cards are
stored under one deduplicated Book record that clients page through later.
"""

__version__ = "0.1.0"
