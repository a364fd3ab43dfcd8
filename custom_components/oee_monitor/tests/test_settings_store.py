"""
Tests for DeviceConfigurationStore: loading, merging, gating and listeners.
"""

from __future__ import annotations

import unittest
from unittest.mock import AsyncMock, MagicMock

from custom_components.oee_monitor.models import DeviceRecord, DeviceSettings

from .test_common import CONFIGURED, make_store


class TestLoad(unittest.IsolatedAsyncioTestCase):

    async def test_missing_record_loads_defaults(self):
        store = make_store(raw=None)
        settings = await store.async_load()
        self.assertEqual(settings, DeviceSettings())
        self.assertTrue(store.is_gated())

    async def test_valid_record_is_restored(self):
        raw = {
            "settings": dict(CONFIGURED, last_setup_date="2024-01-15T08:00:00+00:00"),
            "devices": [{"id": "entry-1", "name": "Test Device", "line_id": "L1", "line_name": "Line 1"}],
        }
        store = make_store(raw=raw)
        settings = await store.async_load()
        self.assertEqual(settings.line_id, "L1")
        self.assertTrue(settings.is_configured)
        self.assertFalse(store.is_gated())
        self.assertEqual(store.devices, [DeviceRecord("entry-1", "Test Device", "L1", "Line 1")])

    async def test_unknown_keys_in_record_are_ignored(self):
        store = make_store(raw={"settings": dict(CONFIGURED, legacy_field="x")})
        settings = await store.async_load()
        self.assertEqual(settings.line_id, "L1")

    async def test_malformed_record_loads_unconfigured(self):
        for raw in (
            ["not", "a", "dict"],
            {"settings": "garbage"},
            {"settings": {"is_configured": "yes", "line_id": "L1"}},
            {"settings": {"line_id": 42}},
            {"settings": {"is_configured": True, "line_id": ""}},
            {"settings": dict(CONFIGURED), "devices": "nope"},
            {"settings": dict(CONFIGURED), "devices": [{"id": "x"}]},
        ):
            with self.subTest(raw=raw):
                store = make_store(raw=raw)
                settings = await store.async_load()
                self.assertEqual(settings, DeviceSettings())
                self.assertTrue(store.is_gated())

    async def test_unreadable_storage_loads_unconfigured(self):
        store = make_store()
        store._store.async_load = AsyncMock(side_effect=ValueError("bad json"))
        settings = await store.async_load()
        self.assertEqual(settings, DeviceSettings())


class TestSetSettings(unittest.IsolatedAsyncioTestCase):

    async def test_merge_stamps_last_setup_date_and_persists(self):
        store = make_store()
        settings = await store.async_set_settings(dict(CONFIGURED))

        self.assertTrue(settings.is_configured)
        self.assertIsNotNone(settings.last_setup_date)
        store._store.async_save.assert_awaited_once()
        saved = store._store.async_save.await_args.args[0]
        self.assertEqual(saved["settings"]["line_id"], "L1")
        self.assertEqual(saved["devices"][0]["line_id"], "L1")

    async def test_partial_merge_keeps_other_fields(self):
        store = make_store()
        await store.async_set_settings(dict(CONFIGURED))
        settings = await store.async_set_settings({"product_name": "Widget"})
        self.assertEqual(settings.line_id, "L1")
        self.assertEqual(settings.product_name, "Widget")

    async def test_unknown_keys_and_setup_date_are_not_merged(self):
        store = make_store()
        settings = await store.async_set_settings({"line_id": "L1", "bogus": 1, "last_setup_date": "1999"})
        self.assertFalse(hasattr(settings, "bogus"))
        self.assertNotEqual(settings.last_setup_date, "1999")

    async def test_configured_without_line_is_stored_unconfigured(self):
        store = make_store()
        settings = await store.async_set_settings({"is_configured": True, "line_id": ""})
        self.assertFalse(settings.is_configured)
        self.assertTrue(store.is_gated())
        self.assertEqual(store.devices, [])

    async def test_device_record_is_upserted_not_duplicated(self):
        store = make_store()
        await store.async_set_settings(dict(CONFIGURED))
        await store.async_set_settings({"line_id": "L2", "line_name": "Line 2"})
        self.assertEqual(len(store.devices), 1)
        self.assertEqual(store.devices[0].line_id, "L2")

    async def test_reset_restores_defaults(self):
        store = make_store()
        await store.async_set_settings(dict(CONFIGURED))
        settings = await store.async_reset()
        self.assertEqual(settings, DeviceSettings())
        self.assertTrue(store.is_gated())


class TestGate(unittest.TestCase):

    def test_gated_until_configured_with_line(self):
        store = make_store()
        self.assertTrue(store.is_gated())
        store._settings = DeviceSettings(line_id="L1")
        self.assertTrue(store.is_gated())
        store._settings = DeviceSettings(line_id="L1", is_configured=True)
        self.assertFalse(store.is_gated())


class TestListeners(unittest.IsolatedAsyncioTestCase):

    async def test_listener_receives_old_and_new(self):
        store = make_store()
        listener = MagicMock()
        store.async_add_listener(listener)

        new = await store.async_set_settings(dict(CONFIGURED))

        listener.assert_called_once()
        old, received = listener.call_args.args
        self.assertEqual(old, DeviceSettings())
        self.assertEqual(received, new)

    async def test_unsubscribed_listener_is_not_called(self):
        store = make_store()
        listener = MagicMock()
        unsubscribe = store.async_add_listener(listener)
        unsubscribe()
        unsubscribe()

        await store.async_set_settings(dict(CONFIGURED))
        listener.assert_not_called()
