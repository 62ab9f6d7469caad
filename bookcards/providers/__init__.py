"""Concrete adapters for the interfaces in bookcards/interfaces/.

    llm/    OpenAI, Anthropic and Ollama completion providers
    store/  SQLite book and flashcard store
"""
