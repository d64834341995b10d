"""Audit and repair fstab entries for the root, ESP and recovery mounts."""

__version__ = "0.1.0"
