"""Pluggable encryption modules for projected secrets."""

from . import aead
from .interface import EncryptionModule, Key, ModuleFactory, ModuleRegistry
from .plugin import PLUGIN_MODULE, plugin_factory


def new_default_registry() -> ModuleRegistry:
    """Return a registry holding the built-in modules and the plugin loader."""
    registry = ModuleRegistry()
    registry.register("aead", aead.new)
    # Name used by existing manifests
    registry.register("cbc", aead.new)
    registry.register(PLUGIN_MODULE, plugin_factory(registry))
    return registry


default_registry = new_default_registry()

__all__ = [
    "EncryptionModule",
    "Key",
    "ModuleFactory",
    "ModuleRegistry",
    "default_registry",
    "new_default_registry",
]
