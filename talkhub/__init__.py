"""TalkHub — talk-request approval and capacity-bounded lecture registration.

Invariants:
    - Package root contains no executable code (import side-effects prohibited)
"""

__version__ = "1.0.0"
