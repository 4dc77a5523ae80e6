"""Redis operations for counters, sequences, strings, hashes, collections and room queries."""

__version__ = "0.1.0"