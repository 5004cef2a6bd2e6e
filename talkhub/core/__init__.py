"""Core Layer — pure domain logic, no IO, no async, no DB.

Invariants:
    - No module in core/ imports from services/, api/, infrastructure/, or db/
    - Rules receive `now` explicitly; only clock.utc_now reads the wall clock

Design Decisions:
    - Functional core separated from imperative shell: services/ does the IO,
      core/ decides (ADR: impureim sandwich)
"""
