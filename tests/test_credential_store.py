import unittest

from signin_client.exceptions import InvalidCredential, StorageUnavailable
from signin_client.schemas import AuthSource, CredentialBundle, TokenPair
from signin_client.services.credential_store import CredentialStore
from signin_client.stores.memory_store import MemorySecureStorage

from tests.support import PROFILE, FlakyStorage, make_bundle, store_raw


class TestCredentialStore(unittest.IsolatedAsyncioTestCase):
    async def test_save_then_load_returns_same_bundle(self):
        store = CredentialStore(MemorySecureStorage())
        bundle = make_bundle()

        await store.save(bundle)

        self.assertEqual(await store.load(), bundle)
        self.assertEqual(await store.access_token(), "A1")

    async def test_clear_removes_every_entry(self):
        storage = MemorySecureStorage()
        store = CredentialStore(storage)
        await store.save(make_bundle())

        await store.clear()

        self.assertIsNone(await store.load())
        self.assertIsNone(await store.access_token())
        self.assertEqual(await storage.keys(), [])

    async def test_clear_on_empty_store_is_harmless(self):
        store = CredentialStore(MemorySecureStorage())
        await store.clear()
        self.assertIsNone(await store.load())

    async def test_partial_bundle_is_treated_as_absent(self):
        storage = MemorySecureStorage()
        await store_raw(storage, access_token="A1")
        store = CredentialStore(storage)

        self.assertIsNone(await store.load())
        self.assertIsNone(await store.access_token())

    async def test_malformed_profile_is_treated_as_absent(self):
        storage = MemorySecureStorage()
        await store_raw(
            storage,
            user="{not json",
            auth_source="form",
            access_token="A1",
            refresh_token="R1",
        )
        self.assertIsNone(await CredentialStore(storage).load())

    async def test_unknown_auth_source_is_treated_as_absent(self):
        storage = MemorySecureStorage()
        await store_raw(
            storage,
            user='{"id": 1}',
            auth_source="facebook",
            access_token="A1",
            refresh_token="R1",
        )
        self.assertIsNone(await CredentialStore(storage).load())

    async def test_save_rejects_empty_fields(self):
        storage = MemorySecureStorage()
        store = CredentialStore(storage)
        for bundle in (
            make_bundle(access_token=""),
            make_bundle(refresh_token=""),
            CredentialBundle(
                user={}, auth_source=AuthSource.FORM, access_token="A1", refresh_token="R1"
            ),
        ):
            with self.assertRaises(InvalidCredential):
                await store.save(bundle)
        self.assertEqual(await storage.keys(), [])

    async def test_unreadable_storage_loads_as_absent(self):
        storage = FlakyStorage()
        store = CredentialStore(storage)
        await store.save(make_bundle())

        storage.fail_reads = True

        self.assertIsNone(await store.load())

    async def test_failed_write_leaves_no_partial_bundle(self):
        storage = FlakyStorage()
        storage.fail_writes_after = 2
        store = CredentialStore(storage)

        with self.assertRaises(StorageUnavailable):
            await store.save(make_bundle())

        self.assertEqual(await storage.keys(), [])
        self.assertIsNone(await store.load())

    async def test_failed_token_swap_restores_previous_bundle(self):
        storage = FlakyStorage()
        store = CredentialStore(storage)
        await store.save(make_bundle())
        _, generation = await store.load_with_generation()
        storage.fail_once_keys.add("refreshToken")

        with self.assertRaises(StorageUnavailable):
            await store.replace_tokens(
                TokenPair(accessToken="A2", refreshToken="R2"), expected_generation=generation
            )

        self.assertEqual(await store.load(), make_bundle())

    async def test_failed_clear_raises(self):
        storage = FlakyStorage()
        store = CredentialStore(storage)
        await store.save(make_bundle())
        storage.fail_removals = True

        with self.assertRaises(StorageUnavailable):
            await store.clear()

    async def test_replace_tokens_keeps_profile_and_source(self):
        store = CredentialStore(MemorySecureStorage())
        await store.save(make_bundle())
        _, generation = await store.load_with_generation()

        committed = await store.replace_tokens(
            TokenPair(accessToken="A2", refreshToken="R2"), expected_generation=generation
        )

        self.assertTrue(committed)
        bundle = await store.load()
        self.assertEqual(bundle.user, PROFILE)
        self.assertEqual(bundle.auth_source, AuthSource.FORM)
        self.assertEqual((bundle.access_token, bundle.refresh_token), ("A2", "R2"))

    async def test_replace_tokens_refuses_stale_generation(self):
        store = CredentialStore(MemorySecureStorage())
        await store.save(make_bundle())
        _, generation = await store.load_with_generation()
        await store.clear()

        committed = await store.replace_tokens(
            TokenPair(accessToken="A2", refreshToken="R2"), expected_generation=generation
        )

        self.assertFalse(committed)
        self.assertIsNone(await store.load())

    async def test_replace_tokens_without_bundle(self):
        store = CredentialStore(MemorySecureStorage())
        committed = await store.replace_tokens(
            TokenPair(accessToken="A2", refreshToken="R2"),
            expected_generation=store.generation,
        )
        self.assertFalse(committed)
        self.assertIsNone(await store.load())


if __name__ == "__main__":
    unittest.main()
