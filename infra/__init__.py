"""
Infrastructure module exports.

Configuration and bootstrap for all service backends.
"""

from .config import InfraConfig, Stores, get_config, LLMBackendType, MessagingBackendType, StoreBackendType
from .bootstrap import InfraBootstrap, bootstrap_infrastructure

__all__ = [
    "InfraConfig",
    "Stores",
    "get_config",
    "LLMBackendType",
    "MessagingBackendType",
    "StoreBackendType",
    "InfraBootstrap",
    "bootstrap_infrastructure",
]
