"""File-based entry store.

Persists cache entries as one pickled record per file below the storage root,
using write-to-temp-then-rename so readers never observe partial entries.
Bounded Context: Cache Storage
"""
