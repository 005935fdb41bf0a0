"""Game domain services: card availability, sessions, draws, prizes and wins.

This package contains pure(ish) domain logic that the coordinator calls while
holding its lock, keeping transport concerns separated from core game
mechanics. Every function works on the GameState it is given.
"""
