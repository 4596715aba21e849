"""
Sessionkit Modules - Black Box Architecture

Every module exposes its public names from its __init__ and keeps the
rest private. The session module composes the others; none of the
others know about the session engine's internals.
"""
