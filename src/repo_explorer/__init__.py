"""
repo-explorer - cached code search over a collection of local reference repositories.
"""

__version__ = "0.1.0"
__author__ = "repo-explorer contributors"
