"""Services Layer — imperative shell around the pure core.

Invariants:
    - Every write path commits or rolls back before returning; no service leaves
      a half-applied multi-row write behind
    - Services raise TalkHubError subclasses; routes never translate errors themselves

Design Decisions:
    - One module per workflow: approval, registration, queries, administration
"""
