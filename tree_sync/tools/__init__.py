"""
Tools built on the core: configuration and CLI.
"""
