"""
Baraya - client core for the citizen services app.

Owns the authenticated session and the emergency report lifecycle.
Screens and navigation live in the UI shell and talk to this package
through the objects assembled in `baraya.container`.
"""

__version__ = "0.1.0"
