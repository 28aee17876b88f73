"""
Assemblage du moteur au démarrage du process.

La configuration est construite une fois puis passée par référence à
chaque composant.
"""

from dataclasses import dataclass
from typing import Callable, Optional

from ..access import AccessTokenIssuer
from ..core import EngineConfig
from ..core.clock import Clock, utc_now
from ..logging import LogConfig, StructuredLogger
from ..rotation import RotationEngine
from ..store import ExpiredCredentialSweeper, ICredentialStore, InMemoryCredentialStore
from .session_facade import SessionFacade
from .verification_flows import Deliverer, VerificationFlows


@dataclass
class SessionStack:
    """Composants câblés sur un même store, une même horloge."""

    config: EngineConfig
    store: ICredentialStore
    engine: RotationEngine
    issuer: AccessTokenIssuer
    facade: SessionFacade
    flows: VerificationFlows
    sweeper: ExpiredCredentialSweeper


def build_session_stack(
    config: EngineConfig,
    store: Optional[ICredentialStore] = None,
    clock: Optional[Clock] = None,
    deliverer: Optional[Deliverer] = None,
    output_handler: Optional[Callable[[str], None]] = None,
    log_config: Optional[LogConfig] = None,
) -> SessionStack:
    """
    Construit la pile complète.

    Le sweeper est branché sur la facade: login et refresh purgent les
    expirés au plus une fois par config.sweep_interval.

    Args:
        config: Configuration validée
        store: Stockage (défaut: InMemoryCredentialStore)
        clock: Horloge UTC (défaut: horloge système)
        deliverer: Envoi des liens de vérification
        output_handler: Sortie JSON des logs (stdout, fichier...)
        log_config: Configuration commune des loggers
    """
    store = store if store is not None else InMemoryCredentialStore()
    clock = clock or utc_now

    def logger(name: str) -> StructuredLogger:
        return StructuredLogger(name, config=log_config, output_handler=output_handler)

    engine = RotationEngine(store, config, clock=clock, logger=logger("rotation-engine"))
    issuer = AccessTokenIssuer(config, clock=clock, logger=logger("access-issuer"))
    sweeper = ExpiredCredentialSweeper(
        store,
        interval=config.sweep_interval,
        clock=clock,
        logger=logger("credential-sweeper"),
    )

    return SessionStack(
        config=config,
        store=store,
        engine=engine,
        issuer=issuer,
        facade=SessionFacade(engine, issuer, logger=logger("session-facade"), sweeper=sweeper),
        flows=VerificationFlows(engine, deliverer=deliverer, logger=logger("verification-flows")),
        sweeper=sweeper,
    )
