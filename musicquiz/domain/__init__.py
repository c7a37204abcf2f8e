"""Domain layer (pure logic).

- Keep round-composition rules and calculations here.
- Avoid I/O: no DB sessions, no HTTP/FastAPI, no Redis.
- Randomness is passed in as a numpy Generator so callers can seed it.
"""
