"""
Tests d'intégration: cycle de vie complet d'une session

Pile câblée par build_session_stack (store mémoire, horloge contrôlée),
configuration chargée par ConfigLoader.
"""

import json

import pytest

from src.core import ConfigLoader, SecretGenerator
from src.rotation import CredentialExpired, CredentialReused
from src.session import (
    CredentialReuseDetected,
    ReauthenticationRequired,
    SessionStack,
    VerificationFailed,
    build_session_stack,
)
from src.store import CredentialPurpose


@pytest.fixture
def log_lines():
    return []


@pytest.fixture
def stack(clock, log_lines) -> SessionStack:
    config = ConfigLoader(
        environ={
            "JWT_ACCESS_SECRET": "integration-secret-with-32-bytes-minimum",
            "JWT_ACCESS_EXPIRES": "15m",
            "REFRESH_TOKEN_TTL_DAYS": "7",
        }
    ).load()
    return build_session_stack(config, clock=clock, output_handler=log_lines.append)


class TestSessionLifecycle:
    """Login, rotation, rejeu, logout."""

    @pytest.mark.asyncio
    async def test_theft_scenario(self, stack):
        """
        Un attaquant rejoue le premier refresh credential après que le
        client légitime l'a déjà rotaté: toute la famille meurt.
        """
        facade = stack.facade
        device = stack.engine.device_info("Mozilla/5.0", "203.0.113.7")

        login = await facade.login("u1", device)
        rotated = await facade.refresh(login.refresh_secret)

        with pytest.raises(CredentialReuseDetected):
            await facade.refresh(login.refresh_secret)

        with pytest.raises(ReauthenticationRequired):
            await facade.refresh(rotated.refresh_secret)

        assert await facade.get_active_sessions("u1") == []

    @pytest.mark.asyncio
    async def test_other_sessions_unaffected_by_theft(self, stack):
        facade = stack.facade
        phone = await facade.login("u1")
        laptop = await facade.login("u1")
        await facade.refresh(phone.refresh_secret)

        with pytest.raises(CredentialReuseDetected):
            await facade.refresh(phone.refresh_secret)

        assert (await facade.refresh(laptop.refresh_secret)).family_id == laptop.family_id

    @pytest.mark.asyncio
    async def test_long_rotation_chain(self, stack, clock):
        """Chaque rotation repousse l'expiration: la session vit tant qu'elle est utilisée."""
        tokens = await stack.facade.login("u1")
        family_id = tokens.family_id

        for _ in range(10):
            clock.advance(days=6)
            tokens = await stack.facade.refresh(tokens.refresh_secret)

        assert tokens.family_id == family_id
        assert len(await stack.facade.get_active_sessions("u1")) == 1

    @pytest.mark.asyncio
    async def test_idle_session_expires(self, stack, clock):
        tokens = await stack.facade.login("u1")
        clock.advance(days=7)

        with pytest.raises(ReauthenticationRequired) as exc_info:
            await stack.facade.refresh(tokens.refresh_secret)

        assert not isinstance(exc_info.value, CredentialReuseDetected)

    @pytest.mark.asyncio
    async def test_logout_twice(self, stack):
        tokens = await stack.facade.login("u1")

        await stack.facade.logout(tokens.refresh_secret)
        await stack.facade.logout(tokens.refresh_secret)

        assert await stack.facade.get_active_sessions("u1") == []

    @pytest.mark.asyncio
    async def test_access_token_expires_independently(self, stack, clock):
        tokens = await stack.facade.login("u1")
        clock.advance(minutes=15)

        with pytest.raises(ReauthenticationRequired):
            stack.facade.authenticate(tokens.access_token)

        refreshed = await stack.facade.refresh(tokens.refresh_secret)
        assert stack.facade.authenticate_header(f"Bearer {refreshed.access_token}") == "u1"


class TestVerificationLifecycle:
    """Liens email / reset sur la même pile."""

    @pytest.mark.asyncio
    async def test_email_link_expires(self, stack, clock):
        issued = await stack.engine.create("u1", purpose=CredentialPurpose.EMAIL_VERIFY)
        clock.advance(minutes=16)

        with pytest.raises(CredentialExpired):
            await stack.engine.verify(issued.raw_secret, CredentialPurpose.EMAIL_VERIFY)

        with pytest.raises(VerificationFailed):
            await stack.flows.redeem_email_verification(issued.raw_secret)

    @pytest.mark.asyncio
    async def test_password_reset_logs_out_everywhere(self, stack):
        phone = await stack.facade.login("u1")
        laptop = await stack.facade.login("u1")
        link = await stack.flows.issue_password_reset("u1")

        await stack.flows.redeem_password_reset(link.raw_secret)

        assert await stack.facade.get_active_sessions("u1") == []
        for tokens in (phone, laptop):
            with pytest.raises(CredentialReused):
                await stack.engine.verify(tokens.refresh_secret)


class TestOperations:
    """Purge et journalisation."""

    @pytest.mark.asyncio
    async def test_sweeper_keeps_reuse_detection(self, stack, clock):
        login = await stack.facade.login("u1")
        await stack.facade.refresh(login.refresh_secret)
        clock.advance(minutes=10)

        await stack.sweeper.maybe_sweep()

        with pytest.raises(CredentialReuseDetected):
            await stack.facade.refresh(login.refresh_secret)

    @pytest.mark.asyncio
    async def test_sweeper_reclaims_expired(self, stack, clock):
        await stack.facade.login("u1")
        await stack.flows.issue_email_verification("u1")
        clock.advance(days=8)

        assert await stack.sweeper.maybe_sweep() == 2
        assert len(stack.store) == 0

    @pytest.mark.asyncio
    async def test_store_reclaimed_during_traffic(self, stack, clock):
        """Sans appel explicite au sweeper, le trafic suffit à purger les expirés."""
        for _ in range(50):
            await stack.facade.login("u1")
        clock.advance(days=30)

        for _ in range(5):
            tokens = await stack.facade.login("u2")
            await stack.facade.refresh(tokens.refresh_secret)

        # 5 tombstones + 5 successeurs; les 50 sessions expirées ont disparu
        assert len(stack.store) == 10

    @pytest.mark.asyncio
    async def test_request_events_share_correlation_id(self, stack, log_lines):
        login = await stack.facade.login("u1")
        await stack.facade.refresh(login.refresh_secret)
        log_lines.clear()

        with pytest.raises(CredentialReuseDetected):
            await stack.facade.refresh(login.refresh_secret, correlation_id="req-9")

        entries = [json.loads(line) for line in log_lines]
        assert {e["logger"] for e in entries} == {"rotation-engine", "session-facade"}
        assert {e["correlation_id"] for e in entries} == {"req-9"}

    @pytest.mark.asyncio
    async def test_logs_are_json_without_secrets(self, stack, log_lines):
        login = await stack.facade.login("u1")
        rotated = await stack.facade.refresh(login.refresh_secret)
        with pytest.raises(CredentialReuseDetected):
            await stack.facade.refresh(login.refresh_secret)

        secrets = SecretGenerator()
        forbidden = [
            login.refresh_secret,
            rotated.refresh_secret,
            secrets.digest(login.refresh_secret),
            login.access_token,
        ]

        messages = []
        for line in log_lines:
            entry = json.loads(line)
            messages.append(entry["event"])
            for value in forbidden:
                assert value not in line

        assert "session_login" in messages
        assert "credential_rotated" in messages
        assert "credential_reuse_detected" in messages
        assert "family_revoked" in messages
