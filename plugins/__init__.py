# plugins/__init__.py
