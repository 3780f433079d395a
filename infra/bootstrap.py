"""
Infrastructure initialization and bootstrap.

Singleton pattern for wiring stores, the Oracle, the messenger and the
Intent Router from configuration.
"""

from typing import Optional

from agent.context import ContextAssembler
from agent.intent_router import IntentRouter
from agent.media_pipeline import MediaPipeline
from agent.messaging import Messenger
from agent.oracle import AnalysisOracle
from inference import ModelBackend
from transport.whatsapp.rate_limit import RateLimiter

from .config import InfraConfig, Stores, get_config


class InfraBootstrap:
    """
    Bootstrap infrastructure based on configuration.

    Singleton pattern - single instance per process.
    """

    _instance: Optional["InfraBootstrap"] = None

    def __init__(
        self,
        config: Optional[InfraConfig] = None,
        llm_backend: Optional[ModelBackend] = None,
        messenger: Optional[Messenger] = None,
        stores: Optional[Stores] = None,
    ):
        """Initialize bootstrap with configuration; explicit components win."""
        self.config = config or get_config()
        self.llm_backend = llm_backend or self.config.create_llm_backend()
        self.messenger = messenger or self.config.create_messenger()
        self.stores = stores or self.config.create_stores()

        self.oracle = AnalysisOracle(self.llm_backend)
        self.media_pipeline = MediaPipeline(
            oracle=self.oracle,
            records=self.stores.records,
            conversations=self.stores.conversations,
            messenger=self.messenger,
            download_auth=self.config.media_download_auth,
            download_timeout_s=self.config.media_download_timeout_s,
        )
        self.intent_router = IntentRouter(
            users=self.stores.users,
            conversations=self.stores.conversations,
            records=self.stores.records,
            medications=self.stores.medications,
            oracle=self.oracle,
            messenger=self.messenger,
            media_pipeline=self.media_pipeline,
            context_assembler=ContextAssembler(
                self.stores.conversations,
                self.stores.records,
                self.stores.medications,
            ),
        )
        self.rate_limiter = RateLimiter(
            window_s=self.config.rate_limit_window_s,
            max_requests=self.config.rate_limit_max_requests,
        )

    @classmethod
    def get_instance(cls, config: Optional[InfraConfig] = None) -> "InfraBootstrap":
        """
        Get singleton instance.

        Args:
            config: Optional custom configuration (only used first time)

        Returns:
            Singleton InfraBootstrap instance
        """
        if cls._instance is None:
            cls._instance = cls(config)
        return cls._instance

    @classmethod
    def reset(cls):
        """Reset singleton (for testing)."""
        cls._instance = None

    def __repr__(self) -> str:
        """String representation showing configured backends."""
        return (
            f"InfraBootstrap(llm={self.config.llm_backend}, "
            f"messaging={self.config.messaging_backend}, "
            f"stores={self.config.store_backend})"
        )


def bootstrap_infrastructure(config: Optional[InfraConfig] = None) -> InfraBootstrap:
    """
    Bootstrap all infrastructure backends.

    Args:
        config: Optional custom configuration

    Returns:
        InfraBootstrap instance with all backends initialized
    """
    return InfraBootstrap.get_instance(config)
