"""
HTTP ingress for post write requests.
"""

from postpipe.ingress.api import create_app

__all__ = ["create_app"]
