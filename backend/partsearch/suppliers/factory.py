"""Factory for creating and managing supplier adapter instances."""

from typing import Dict, List, Optional, Type

import structlog

from partsearch.config import settings
from partsearch.suppliers.base import BaseAdapter


logger = structlog.get_logger(__name__)


class AdapterFactory:
    """Registry of adapter classes keyed by supplier source id.

    Adapters are created with the shared HTTP timeout; anything else they
    need comes from settings.
    """

    def __init__(self, timeout: Optional[float] = None):
        self.timeout = timeout or settings.HTTP_TIMEOUT_SECONDS

        # Registry of adapter classes, in registration order
        self._adapter_registry: Dict[str, Type[BaseAdapter]] = {}

    def register_adapter(self, source_id: str, adapter_class: Type[BaseAdapter]) -> None:
        """Register an adapter class for a supplier.

        Args:
            source_id: Supplier identifier (e.g., "emex")
            adapter_class: Adapter class (must inherit from BaseAdapter)
        """
        if not issubclass(adapter_class, BaseAdapter):
            raise ValueError(f"Adapter class must inherit from BaseAdapter: {adapter_class}")

        self._adapter_registry[source_id] = adapter_class
        logger.info("adapter_registered", source_id=source_id, protocol=adapter_class.protocol)

    def create_adapter(self, source_id: str) -> Optional[BaseAdapter]:
        """Create and configure an adapter instance.

        Args:
            source_id: Supplier identifier

        Returns:
            Configured adapter instance, or None if not registered
        """
        adapter_class = self._adapter_registry.get(source_id)
        if not adapter_class:
            logger.warning("adapter_not_found", source_id=source_id)
            return None

        adapter = adapter_class(timeout=self.timeout)
        logger.debug("adapter_created", source_id=source_id, protocol=adapter.protocol)
        return adapter

    def create_all(self) -> List[BaseAdapter]:
        """Create one instance of every registered adapter, in registration order."""
        return [self.create_adapter(source_id) for source_id in self._adapter_registry]

    def get_registered_suppliers(self) -> List[str]:
        return list(self._adapter_registry.keys())

    def has_adapter(self, source_id: str) -> bool:
        return source_id in self._adapter_registry


# Global factory instance
adapter_factory = AdapterFactory()


def get_adapter_factory() -> AdapterFactory:
    """Get the global adapter factory instance.

    Returns:
        AdapterFactory instance
    """
    return adapter_factory
