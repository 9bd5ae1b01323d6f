"""Relay server package bridging a messaging platform and a completion API.

This package provides a FastAPI application factory named ``create_app``
inside ``relay_server/server.py`` (see :func:`create_app`).

Typical usage
-------------
from relay_server import create_app
app = create_app()

or, from the provided launcher:

python scripts/run_server.py --host 0.0.0.0 --port 8080
"""

from __future__ import annotations

__all__ = ["create_app", "__version__", "get_version"]

# ---------------------------------------------------------------------
# Version handling
# ---------------------------------------------------------------------
__version__ = "2.0.0"

def get_version() -> str:
    """Return the package version."""
    return __version__

# ---------------------------------------------------------------------
# App factory export
# ---------------------------------------------------------------------
def create_app(*args, **kwargs):
    """Return a configured FastAPI application.

    This forwards to :func:`relay_server.server.create_app`; the import is
    deferred so ``import relay_server`` stays light for tooling that only
    needs metadata.
    """
    from .server import create_app as _create_app

    return _create_app(*args, **kwargs)
