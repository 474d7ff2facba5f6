"""Installer internals: staging, JSON stores and the install lifecycle."""
