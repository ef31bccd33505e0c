"""Pure relay domain: settings, envelopes, payload shapes, errors.

These modules are free of FastAPI/HTTP concerns so they can be unit-tested
on their own and shared by the service layer and the API layer.
"""
__all__ = ["envelope", "errors", "settings", "shapes"]
