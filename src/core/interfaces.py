"""
Core Interfaces
Contrats à implémenter pour le module Core.
"""

from abc import ABC, abstractmethod

from .config import EngineConfig


class IConfigLoader(ABC):
    """Construit la configuration moteur au démarrage du process."""

    @abstractmethod
    def load(self) -> EngineConfig:
        """
        Charge et valide la configuration.

        Raises:
            ConfigurationError: Si source illisible ou valeurs invalides
        """
        pass


class ISecretGenerator(ABC):
    """Secrets bruts et digests at-rest."""

    @abstractmethod
    def generate_secret(self) -> str:
        """Génère un secret brut haute entropie (>= 256 bits)."""
        pass

    @abstractmethod
    def generate_family_id(self) -> str:
        """Génère un identifiant de famille de rotation."""
        pass

    @abstractmethod
    def digest(self, raw_secret: str) -> str:
        """
        Digest one-way du secret brut.

        Returns:
            Hash hex string déterministe
        """
        pass
