"""
Hunk Resolver - parse merge conflict markers and resolve them one hunk at a time.

Features:
- Conflict marker parsing (two-way and diff3 style)
- Per-hunk resolution that leaves every other hunk byte-identical
- Automatic staging once a file has no markers left
- Whole-file ours/theirs shortcut
- Stale-content detection using xxhash fingerprints
- Optional SQLite journal of applied resolutions
"""

__version__ = "1.0.0"
