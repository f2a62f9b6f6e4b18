"""
Metascribe User Interface
=========================

CustomTkinter window, results table, settings dialog and error toast.
"""
