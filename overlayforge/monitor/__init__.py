"""Download progress reporting.

Modules
-------
progress
    The ``ProgressReporter`` protocol, null/logging/Rich implementations,
    and ``notify``, which isolates resolution from reporter failures.
"""
