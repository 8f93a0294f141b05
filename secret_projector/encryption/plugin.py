"""Encryption modules provided by external code.

A manifest selects an external module with:

    encryption:
      module: plugin
      plugin-path: /path/to/crypter.py   # or a dotted module path, e.g. mycorp.crypto.crypter

The referenced module must expose a `new(config, primary_keys, secondary_keys)`
factory. The factory is registered as "plugin:<plugin-path>" before use, so it
is validated like any built-in factory.
"""
import importlib
import importlib.util
import logging
import os
from types import ModuleType
from typing import BinaryIO

from ..projection.domains.errors import MissingPluginPathError, PluginLoadError
from ..projection.domains.models import EncryptionConfig
from .interface import EncryptionModule, ModuleRegistry

logger = logging.getLogger(__name__)

PLUGIN_MODULE = "plugin"
PLUGIN_FACTORY_NAME = "new"


def _import_plugin(plugin_path: str) -> ModuleType:
    if plugin_path.endswith(".py") or os.path.sep in plugin_path:
        if not os.path.isfile(plugin_path):
            raise PluginLoadError(f"encryption plugin not found: {plugin_path}")
        module_name = f"secret_projector_plugin_{os.path.splitext(os.path.basename(plugin_path))[0]}"
        spec = importlib.util.spec_from_file_location(module_name, plugin_path)
        if spec is None or spec.loader is None:
            raise PluginLoadError(f"failed to load encryption plugin: {plugin_path}")
        module = importlib.util.module_from_spec(spec)
        try:
            spec.loader.exec_module(module)
        except Exception as e:
            raise PluginLoadError(f"failed to load encryption plugin {plugin_path}: {e}") from e
        return module

    try:
        return importlib.import_module(plugin_path)
    except ImportError as e:
        raise PluginLoadError(f"failed to import encryption plugin {plugin_path}: {e}") from e


def load_plugin_factory(plugin_path: str, registry: ModuleRegistry) -> str:
    """
    Load an external factory and register it as a late-bound module.

    Returns:
        The identifier the factory was registered under

    Raises:
        MissingPluginPathError: If plugin_path is empty
        PluginLoadError: If the plugin cannot be loaded or lacks a `new` factory
    """
    if not plugin_path:
        raise MissingPluginPathError(f"plugin-path is required for encryption module '{PLUGIN_MODULE}'")

    name = f"{PLUGIN_MODULE}:{plugin_path}"
    if name in registry:
        return name

    module = _import_plugin(plugin_path)
    factory = getattr(module, PLUGIN_FACTORY_NAME, None)
    if factory is None:
        raise PluginLoadError(
            f"encryption plugin {plugin_path} does not expose a '{PLUGIN_FACTORY_NAME}' constructor"
        )
    registry.register(name, factory)
    logger.info(f"Loaded encryption plugin from {plugin_path}")
    return name


def plugin_factory(registry: ModuleRegistry):
    """Return the factory registered under "plugin", dispatching to the module named by plugin-path."""

    def _new(config: EncryptionConfig, primary_keys: BinaryIO, secondary_keys: BinaryIO) -> EncryptionModule:
        name = load_plugin_factory(config.plugin_path, registry)
        return registry.get(name)(config, primary_keys, secondary_keys)

    return _new
