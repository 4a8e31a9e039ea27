"""Register all supplier adapters with the factory.

Imported during application startup; registration is idempotent.
"""

import structlog

from partsearch.suppliers.factory import get_adapter_factory
from partsearch.suppliers.adapters import (
    ApecAdapter,
    EmexAdapter,
    ImpexAdapter,
    RotingerAdapter,
    StimoAdapter,
    ThunderAdapter,
)

logger = structlog.get_logger(__name__)

# Source id -> adapter class, in the order results are reported
ADAPTERS = [
    ("impex", ImpexAdapter),
    ("apec", ApecAdapter),
    ("emex", EmexAdapter),
    ("stimo", StimoAdapter),
    ("thunder", ThunderAdapter),
    ("rotinger", RotingerAdapter),
]


def register_all_adapters() -> None:
    """Register all available adapters with the factory."""
    factory = get_adapter_factory()

    for source_id, adapter_class in ADAPTERS:
        if factory.has_adapter(source_id):
            continue
        factory.register_adapter(source_id, adapter_class)

    logger.info(
        "adapter_registration_complete",
        total_adapters=len(factory.get_registered_suppliers()),
    )
