"""
mdhost: Versioned Markdown Host

A network service for storing and serving versioned text documents.
Each file is a human-readable name with an ordered, append-only history
of immutable revisions. A revision is identified by the SHA-1 of its
content, so identical content is stored exactly once.

LAYER STRUCTURE:
================

1. CONTRACTS (contracts/)
   - ContentAddress, FileRecord, Error/Result, audit entries
   - Immutable data only, no behavior beyond derivation

2. STORAGE (storage/)
   - ContentStore: write-once, content-addressed blobs
   - FileRegistry: name -> append-only history of addresses
   - Interchangeable backends (memory, disk + SQLite)

3. ORCHESTRATION (engine.py)
   - Creates files, appends revisions, resolves "latest"
   - Content is stored before any history references it

4. RENDERING (render.py)
   - Markdown -> HTML fragment -> page template

5. PROTOCOL (api/)
   - FastAPI routes, error-to-status mapping, permissive CORS

6. OBSERVABILITY (observability/)
   - Logging setup and append-only audit log

CONSTRAINTS ENFORCED:
=====================
- Write-once content: no update or delete of revisions
- Append-only histories: atomic per-name append, nothing lost
- Explicit errors: every failure is a typed Error, never a silent default
"""

__version__ = "0.1.0"
