"""
ClientDesk - client, billing and support management API
"""

__version__ = "1.0.0"
