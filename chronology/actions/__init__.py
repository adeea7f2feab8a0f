from chronology.actions.registry import (
    ActionProvider,
    ActionRegistry,
    default_registry,
    descriptor_table,
    register_action_provider,
    register_configured_actions,
)

__all__ = [
    "ActionProvider",
    "ActionRegistry",
    "default_registry",
    "descriptor_table",
    "register_action_provider",
    "register_configured_actions",
]
