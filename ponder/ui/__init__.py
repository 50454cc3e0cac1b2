"""
Terminal UI helpers for the Ponder CLI.
"""
