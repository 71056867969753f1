"""
Terminal Application Package

This package contains the entry point (argument parsing, input handling,
lifecycle) and the table renderer that draws the active exchange's data.
"""
