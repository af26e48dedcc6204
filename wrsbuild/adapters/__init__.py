"""Adapter package for external I/O implementations.

Purpose:
    Concrete implementations of the domain ports: the XML ledger store, the
    DISM / robocopy / expand tool wrappers, and filesystem image discovery.

Call context:
    Wired together by ``wrsbuild.cli``; use cases only see the port protocols.
"""
