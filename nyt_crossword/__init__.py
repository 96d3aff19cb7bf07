"""Fetch New York Times crossword PDFs and save or print them."""

__version__ = "0.1.0"
