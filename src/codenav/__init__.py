"""
codenav - Core Package

Code navigation primitives over a PHP source tree: ripgrep-backed pattern
search, documentation/declaration excerpts, and bounded directory trees.
"""

__version__ = "0.1.0"
__author__ = "codenav Team"
