"""Command line interface for latchkey."""
