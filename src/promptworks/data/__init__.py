"""Packaged default catalog (``catalog.json``)."""
