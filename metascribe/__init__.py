"""
Metascribe
==========

Desktop utility that generates a title, description and tags for image
files with the Google Gemini vision API and exports them to CSV.
"""

from metascribe.core.config import APP_VERSION as __version__
