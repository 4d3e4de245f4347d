"""Core building blocks: stream cursor, scrambler, signature and advisor."""
