"""
Core Pipeline Logic
===================

Validation, scheduling, orchestration, CSV export and session state for
the Metascribe application.
"""
