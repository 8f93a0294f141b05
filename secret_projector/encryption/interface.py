"""Encryption module contract and the registry of module factories.

An encryption module is built by a factory with the signature

    factory(config: EncryptionConfig, primary_keys: BinaryIO, secondary_keys: BinaryIO) -> EncryptionModule

The primary stream carries the key material used to encrypt. The secondary
stream carries optional material used to unwrap keys; symmetric modules
receive an empty stream.
"""
import inspect
import io
import logging
from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Dict, List

from ..projection.domains.errors import EncryptionConfigError, UnsupportedModuleError
from ..projection.domains.models import EncryptionConfig

logger = logging.getLogger(__name__)


class Key(ABC):
    """Decryption key material that can be shipped alongside encrypted data."""

    @abstractmethod
    def plaintext(self) -> str:
        """Return the plaintext form of this key."""

    @abstractmethod
    def to_dict(self) -> Dict[str, str]:
        """Return the structured form used when serializing the key."""


class EncryptionModule(ABC):
    """Encrypts projected data and reports the keys needed to decrypt it."""

    @abstractmethod
    def encrypt(self, data: bytes) -> bytes:
        pass

    @abstractmethod
    def decrypt(self, data: bytes) -> bytes:
        pass

    @abstractmethod
    def decryption_keys(self) -> List[Key]:
        pass


ModuleFactory = Callable[[EncryptionConfig, BinaryIO, BinaryIO], EncryptionModule]


def _validate_factory(name: str, factory) -> None:
    if not callable(factory):
        raise EncryptionConfigError(f"encryption module '{name}' factory is not callable")
    try:
        signature = inspect.signature(factory)
    except (TypeError, ValueError):
        # Builtins without introspectable signatures are accepted as-is
        return
    try:
        signature.bind(None, None, None)
    except TypeError as e:
        raise EncryptionConfigError(
            f"encryption module '{name}' factory must accept (config, primary_keys, secondary_keys): {e}"
        ) from e


class ModuleRegistry:
    """Maps encryption module identifiers to factories."""

    def __init__(self):
        self._factories: Dict[str, ModuleFactory] = {}

    def register(self, name: str, factory: ModuleFactory) -> None:
        """
        Register a factory under a module identifier.

        Raises:
            EncryptionConfigError: If the factory does not match the factory signature
        """
        _validate_factory(name, factory)
        if name in self._factories:
            logger.debug(f"Replacing encryption module factory '{name}'")
        self._factories[name] = factory

    def __contains__(self, name: str) -> bool:
        return name in self._factories

    def names(self) -> List[str]:
        return sorted(self._factories)

    def get(self, name: str) -> ModuleFactory:
        try:
            return self._factories[name]
        except KeyError:
            raise UnsupportedModuleError(f"unsupported encryption module '{name}'") from None

    def create(self, config: EncryptionConfig) -> EncryptionModule:
        """
        Build the module named by config.module.

        Opens config.creds_keys_file (required) and config.keys_decrypter_file
        (optional) and hands both streams to the factory.

        Raises:
            EncryptionConfigError: If a key file cannot be opened or the module is unknown
        """
        factory = self.get(config.module)

        try:
            primary = open(config.creds_keys_file, "rb")
        except OSError as e:
            raise EncryptionConfigError(
                f"unable to open creds_keys_file '{config.creds_keys_file}': {e}"
            ) from e

        with primary:
            if config.keys_decrypter_file:
                try:
                    secondary = open(config.keys_decrypter_file, "rb")
                except OSError as e:
                    raise EncryptionConfigError(
                        f"unable to open keys_decrypter_file '{config.keys_decrypter_file}': {e}"
                    ) from e
            else:
                secondary = io.BytesIO(b"")
            with secondary:
                logger.debug(f"Creating encryption module '{config.module}'")
                return factory(config, primary, secondary)
