"""Adapter package for external I/O implementations.

Purpose:
    Collect concrete implementations for domain ports (HTTP and SFTP
    transports, manifest reading, settings storage, and artifact loading)
    used by use cases.

Dependencies:
    Individual submodules depend on ``requests``, ``paramiko``, filesystem
    APIs, and domain protocol definitions.

Call context:
    Imported by app composition modules (for runtime wiring) and by tests (for
    transport-level behavior verification).
"""
