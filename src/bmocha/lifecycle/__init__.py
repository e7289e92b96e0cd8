"""Process lifecycle exports."""

from .process_lifecycle import (
    FATAL_ERROR_LABEL,
    UNHANDLED_REJECTION_LABEL,
    ProcessLifecycle,
    install_unhandled_rejection_handler,
    run_lifecycle,
    terminate_process,
)

__all__ = [
    "FATAL_ERROR_LABEL",
    "UNHANDLED_REJECTION_LABEL",
    "ProcessLifecycle",
    "install_unhandled_rejection_handler",
    "run_lifecycle",
    "terminate_process",
]
