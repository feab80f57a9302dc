"""Game domain services: board rules, game lifecycle, matchmaking and
move coordination.

This package contains the core logic imported by HTTP routes, keeping
transport concerns separated from game mechanics.
"""
