"""notify/ -- Outbound notification delivery (one-time code emails).

Layer rule: notify/ imports only stdlib + core/. It does NOT import from
api/ or auth/. auth/ receives a sender through its constructor.
"""
