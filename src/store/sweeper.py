"""
Credential Store - Purge des expirés

Récupération opportuniste de l'espace. La validité d'un credential ne dépend
jamais de cette purge: l'expiration est vérifiée à chaque lecture.
"""

from datetime import datetime, timedelta
from typing import Optional

from ..core.clock import Clock, utc_now
from ..logging import StructuredLogger
from .interfaces import ICredentialStore


class ExpiredCredentialSweeper:
    """
    Purge des credentials expirés.

    Les tombstones de rotation (révoqués) sont conservés jusqu'à leur
    propre expiration, ce qui couvre la détection de rejeu.

    Example:
        sweeper = ExpiredCredentialSweeper(store, interval=timedelta(minutes=5))
        await sweeper.maybe_sweep()  # SessionFacade: début de login et refresh
    """

    def __init__(
        self,
        store: ICredentialStore,
        interval: timedelta = timedelta(minutes=5),
        clock: Optional[Clock] = None,
        logger: Optional[StructuredLogger] = None,
    ) -> None:
        self._store = store
        self._interval = interval
        self._clock = clock or utc_now
        self._logger = logger or StructuredLogger("credential-sweeper")
        self._last_sweep: Optional[datetime] = None

    @property
    def last_sweep(self) -> Optional[datetime]:
        return self._last_sweep

    async def sweep(self) -> int:
        """
        Purge immédiate.

        Returns:
            Nombre d'enregistrements supprimés
        """
        now = self._clock()
        purged = await self._store.purge_expired(now)
        self._last_sweep = now

        if purged > 0:
            self._logger.info("credentials_purged", purged=purged)
        return purged

    async def maybe_sweep(self) -> int:
        """
        Purge si l'intervalle est écoulé depuis la dernière purge.

        Returns:
            Nombre supprimé, 0 si purge ignorée
        """
        if self._last_sweep is not None and self._clock() - self._last_sweep < self._interval:
            return 0
        return await self.sweep()
