"""Game domain services: lobby, turns, scoring rules and read models.

This package contains the authoritative game logic that should be imported
by HTTP routes, keeping transport concerns separated from core game
mechanics. Services raise ``quest.errors`` exceptions, commit their own
transaction, and only then publish realtime events.
"""
