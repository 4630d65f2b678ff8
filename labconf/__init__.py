"""
labconf: idempotent config-file editing for lab machine provisioning.
"""

__version__ = "1.0.0"
