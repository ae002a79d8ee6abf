"""Core round primitives (number drawing and round generation).

Kept free of FastAPI and Redis concerns so it can be reused by API routes, CLI, and tests.
"""
