"""
startupcall_services -- cross-module service layer.

Holds the workflow executor (transition authorization + trace) and the
``Platform`` composition root that wires configuration, database,
clock, and notification delivery together.
"""
