"""Brand asset extraction (logos, colors, fonts, illustrations) from web pages."""

__version__ = "0.1.0"
