"""Domain layer for the task lifecycle engine.

Holds the aggregate (Task), its value objects, the domain errors and the
pure domain services (state machine, guards, resolution classifier).
Nothing here performs I/O.
"""
