# precacher/core/__init__.py
