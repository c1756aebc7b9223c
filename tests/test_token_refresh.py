import asyncio
import unittest

from signin_client.constants import ENDPOINT_REFRESH_TOKEN
from signin_client.exceptions import BackendUnavailable
from signin_client.interfaces.backend_client import ApiResponse
from signin_client.services.credential_store import CredentialStore
from signin_client.services.token_refresh import TokenRefreshCoordinator
from signin_client.stores.memory_store import MemorySecureStorage

from tests.support import FakeBackend, FlakyStorage, make_bundle


class HangingStorage(MemorySecureStorage):
    """Reads never complete."""

    async def get_item(self, key):
        await asyncio.Event().wait()


class TestTokenRefreshCoordinator(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.backend = FakeBackend()
        self.credentials = CredentialStore(MemorySecureStorage())
        self.refresh = TokenRefreshCoordinator(self.backend, self.credentials, timeout=0.5)

    async def test_no_refresh_token_means_no_network_call(self):
        outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertEqual(self.backend.requests, [])
        self.assertFalse(self.refresh.in_flight)

    async def test_success_replaces_tokens(self):
        await self.credentials.save(make_bundle())
        self.backend.reply(ENDPOINT_REFRESH_TOKEN, 200, {"accessToken": "A2", "refreshToken": "R2"})

        outcome = await self.refresh.refresh()

        self.assertTrue(outcome.succeeded)
        self.assertEqual(outcome.access_token, "A2")
        self.assertEqual(self.backend.requests[0].json, {"refreshToken": "R1"})
        bundle = await self.credentials.load()
        self.assertEqual((bundle.access_token, bundle.refresh_token), ("A2", "R2"))

    async def test_concurrent_callers_share_one_exchange(self):
        await self.credentials.save(make_bundle())
        release = asyncio.Event()

        async def slow_refresh(request):
            await release.wait()
            return ApiResponse(200, {"accessToken": "A2", "refreshToken": "R2"})

        self.backend.route(ENDPOINT_REFRESH_TOKEN, slow_refresh)

        waiters = [asyncio.create_task(self.refresh.refresh()) for _ in range(5)]
        await asyncio.sleep(0)
        self.assertTrue(self.refresh.in_flight)
        release.set()
        outcomes = await asyncio.gather(*waiters)

        self.assertEqual(len(self.backend.calls_to(ENDPOINT_REFRESH_TOKEN)), 1)
        self.assertEqual({o.access_token for o in outcomes}, {"A2"})
        self.assertFalse(self.refresh.in_flight)

    async def test_next_refresh_after_completion_is_a_new_exchange(self):
        await self.credentials.save(make_bundle())
        issued = iter([("A2", "R2"), ("A3", "R3")])

        async def rotate(request):
            access, refresh = next(issued)
            return ApiResponse(200, {"accessToken": access, "refreshToken": refresh})

        self.backend.route(ENDPOINT_REFRESH_TOKEN, rotate)

        first = await self.refresh.refresh()
        second = await self.refresh.refresh()

        self.assertEqual((first.access_token, second.access_token), ("A2", "A3"))
        calls = self.backend.calls_to(ENDPOINT_REFRESH_TOKEN)
        self.assertEqual([c.json["refreshToken"] for c in calls], ["R1", "R2"])

    async def test_rejected_refresh_keeps_stored_bundle(self):
        await self.credentials.save(make_bundle())
        self.backend.reply(ENDPOINT_REFRESH_TOKEN, 401, {"message": "Refresh token expired"})

        outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertIn("401", outcome.reason)
        self.assertEqual(await self.credentials.load(), make_bundle())

    async def test_malformed_response_fails(self):
        await self.credentials.save(make_bundle())
        self.backend.reply(ENDPOINT_REFRESH_TOKEN, 200, {"accessToken": "A2"})

        outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertEqual((await self.credentials.load()).access_token, "A1")

    async def test_transport_error_fails(self):
        await self.credentials.save(make_bundle())

        async def unreachable(request):
            raise BackendUnavailable("connection refused")

        self.backend.route(ENDPOINT_REFRESH_TOKEN, unreachable)

        outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertFalse(self.refresh.in_flight)

    async def test_timeout_fails_and_releases_handle(self):
        await self.credentials.save(make_bundle())
        self.refresh = TokenRefreshCoordinator(self.backend, self.credentials, timeout=0.05)

        async def hang(request):
            await asyncio.sleep(10)

        self.backend.route(ENDPOINT_REFRESH_TOKEN, hang)

        outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertIn("timed out", outcome.reason)
        self.assertFalse(self.refresh.in_flight)

    async def test_unexpected_backend_error_fails(self):
        await self.credentials.save(make_bundle())

        async def socket_closed(request):
            raise RuntimeError("socket closed")

        self.backend.route(ENDPOINT_REFRESH_TOKEN, socket_closed)

        with self.assertLogs("signin_client.services.token_refresh", level="ERROR"):
            outcome = await self.refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertIn("socket closed", outcome.reason)
        self.assertFalse(self.refresh.in_flight)

    async def test_hung_storage_read_times_out(self):
        credentials = CredentialStore(HangingStorage())
        refresh = TokenRefreshCoordinator(self.backend, credentials, timeout=0.05)

        outcome = await asyncio.wait_for(refresh.refresh(), 1.0)

        self.assertFalse(outcome.succeeded)
        self.assertIn("timed out", outcome.reason)
        self.assertFalse(refresh.in_flight)
        self.assertEqual(self.backend.requests, [])

    async def test_failed_token_write_keeps_previous_bundle(self):
        storage = FlakyStorage()
        credentials = CredentialStore(storage)
        refresh = TokenRefreshCoordinator(self.backend, credentials, timeout=0.5)
        await credentials.save(make_bundle())
        self.backend.reply(ENDPOINT_REFRESH_TOKEN, 200, {"accessToken": "A2", "refreshToken": "R2"})
        storage.fail_once_keys.add("accessToken")

        outcome = await refresh.refresh()

        self.assertFalse(outcome.succeeded)
        self.assertEqual(await credentials.load(), make_bundle())

    async def test_logout_during_refresh_wins(self):
        await self.credentials.save(make_bundle())
        started = asyncio.Event()
        release = asyncio.Event()

        async def slow_refresh(request):
            started.set()
            await release.wait()
            return ApiResponse(200, {"accessToken": "A2", "refreshToken": "R2"})

        self.backend.route(ENDPOINT_REFRESH_TOKEN, slow_refresh)

        pending = asyncio.create_task(self.refresh.refresh())
        await started.wait()
        await self.credentials.clear()
        release.set()
        outcome = await pending

        self.assertFalse(outcome.succeeded)
        self.assertIsNone(await self.credentials.load())

    async def test_cancelled_caller_does_not_cancel_shared_refresh(self):
        await self.credentials.save(make_bundle())
        release = asyncio.Event()

        async def slow_refresh(request):
            await release.wait()
            return ApiResponse(200, {"accessToken": "A2", "refreshToken": "R2"})

        self.backend.route(ENDPOINT_REFRESH_TOKEN, slow_refresh)

        impatient = asyncio.create_task(self.refresh.refresh())
        patient = asyncio.create_task(self.refresh.refresh())
        await asyncio.sleep(0)
        impatient.cancel()
        release.set()

        outcome = await patient
        self.assertTrue(outcome.succeeded)
        with self.assertRaises(asyncio.CancelledError):
            await impatient


if __name__ == "__main__":
    unittest.main()
