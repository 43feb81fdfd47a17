"""Command line host for spine-wps."""

from spine_wps.cli.app import app

__all__ = ["app"]
