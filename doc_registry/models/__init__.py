from doc_registry.models.person import Person  # noqa: F401
from doc_registry.models.registry import (  # noqa: F401
    Acknowledgment,
    Control,
    Document,
    DocumentControl,
    DocumentRisk,
    DocumentStatus,
    DocumentType,
    DocumentVersionHistory,
    ReviewTask,
    ReviewTaskStatus,
    Risk,
    StorageLocation,
)
