"""Pure domain code: the token store and input validation.

Nothing here knows about FastAPI or HTTP, so both the server and the smoke
runner can import it and it can be unit-tested directly.
"""
__all__ = ["store", "validation"]
