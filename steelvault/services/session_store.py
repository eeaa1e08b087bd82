# steelvault/services/session_store.py
"""
Key/value stores holding the serialized auth session.

The web app keeps the blob in Flask's signed session cookie under one fixed
key, the way a single-page app would keep it in local storage.
"""

from flask import session


class MemorySessionStore:
    """Dict-backed store used by scripts and tests."""

    def __init__(self, initial=None):
        self._data = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = value

    def remove(self, key):
        self._data.pop(key, None)


class FlaskSessionStore:
    """Store backed by ``flask.session``; only usable inside a request context."""

    def get(self, key):
        return session.get(key)

    def set(self, key, value):
        session[key] = value
        session.permanent = True

    def remove(self, key):
        session.pop(key, None)
