# precacher/__init__.py
