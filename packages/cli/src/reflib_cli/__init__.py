"""Reflib CLI - the ``reflib`` command."""
