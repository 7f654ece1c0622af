"""
framerender - render composition frames with a pool of browser tabs
"""

__version__ = "0.1.0"
