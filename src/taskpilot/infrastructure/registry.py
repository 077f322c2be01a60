"""
Oracle Registry with Entry Points Discovery.

Provides dynamic oracle loading via Python entry points (taskpilot.oracles group).
External packages can register oracles in their pyproject.toml:

    [project.entry-points."taskpilot.oracles"]
    my-provider = "mypackage.oracles:MyOracle"
"""

import logging
from importlib.metadata import entry_points
from typing import Any

from taskpilot.domain.interfaces import OracleInterface

logger = logging.getLogger(__name__)

ENTRY_POINT_GROUP = "taskpilot.oracles"


class OracleRegistry:
    """
    Registry for OracleInterface implementations.

    Discovers oracles via the 'taskpilot.oracles' entry point group.
    Uses lazy loading - entry points are only loaded on first access.

    Example usage:
        oracle = OracleRegistry.create("ollama", model="qwen2.5-coder:14b")
    """

    _oracles: dict[str, type[OracleInterface]] = {}
    _loaded: bool = False

    @classmethod
    def _load_entry_points(cls) -> None:
        """Load oracles from entry points (lazy, called once)."""
        if cls._loaded:
            return

        for ep in entry_points(group=ENTRY_POINT_GROUP):
            if ep.name in cls._oracles:
                continue  # Manual registration wins
            try:
                cls._oracles[ep.name] = ep.load()
            except Exception as e:
                logger.warning(f"Failed to load oracle '{ep.name}' from entry point: {e}")

        cls._loaded = True

    @classmethod
    def register(cls, name: str, oracle_class: type[OracleInterface]) -> None:
        """
        Manually register an oracle class.

        Useful for testing or dynamically-created oracles.

        Args:
            name: Provider identifier (e.g., "ollama")
            oracle_class: Class implementing OracleInterface
        """
        cls._oracles[name] = oracle_class

    @classmethod
    def get(cls, name: str) -> type[OracleInterface]:
        """
        Get an oracle class by name.

        Raises:
            KeyError: If oracle not found
        """
        cls._load_entry_points()
        if name not in cls._oracles:
            available = ", ".join(sorted(cls._oracles)) or "(none)"
            raise KeyError(f"Oracle '{name}' not found. Available oracles: {available}")
        return cls._oracles[name]

    @classmethod
    def create(cls, name: str, **config: Any) -> OracleInterface:
        """
        Create an oracle instance by name.

        Args:
            name: Provider identifier
            **config: Configuration passed to the oracle constructor

        Raises:
            KeyError: If oracle not found
            TypeError: If config doesn't match constructor signature
        """
        oracle_class = cls.get(name)
        return oracle_class(**config)

    @classmethod
    def available(cls) -> list[str]:
        """List available provider names."""
        cls._load_entry_points()
        return sorted(cls._oracles)

    @classmethod
    def clear(cls) -> None:
        """
        Clear all registered oracles (useful for testing).

        Also resets the loaded flag so entry points can be reloaded.
        """
        cls._oracles.clear()
        cls._loaded = False
