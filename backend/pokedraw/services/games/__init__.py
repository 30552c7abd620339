"""Game domain services: lobbies, host authority, rounds, scoring and timers.

This package contains pure(ish) domain logic that the Socket.IO handlers
and HTTP routes call into, keeping transport concerns separated from core
game mechanics.
"""
