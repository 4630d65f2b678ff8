"""
Service Layer

Service classes shared by the CLI and the provisioning modules.
"""

from labconf.services.config_service import ConfigService

__all__ = [
    "ConfigService",
]
