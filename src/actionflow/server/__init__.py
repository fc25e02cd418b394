"""REST server package.

Exposes the run surface over HTTP: run an application for an identity, and
inspect or reset that identity's state.
"""

from actionflow.server.app import create_app

__all__ = ["create_app"]
