"""Pydantic Schemas — request/response validation for API endpoints.

Invariants:
    - Schemas validate at system boundary (user input, API responses)
    - Lecture views carry both the projected and the stored status

Design Decisions:
    - Separate from models: schemas are API contracts, models are persistence
"""
