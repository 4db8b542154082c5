"""
CLI (Command Line Interface) for the batch comparison tools.

This is a thin wrapper around the confdiff engine. All business logic lives
in the engine to keep it reusable.
"""
