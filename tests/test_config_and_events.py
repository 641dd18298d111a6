"""Tests for settings loading and the observer list."""

from __future__ import annotations

import os
import unittest
from unittest import mock

from formsign.config import Settings
from formsign.state.events import SessionObservers, StateChange


class TestSettings(unittest.TestCase):
    def test_environment_overrides_defaults(self) -> None:
        env = {
            "FORMSIGN_BACKEND_URL": "https://api.example",
            "FORMSIGN_ANCHOR_TIMEOUT": "1.5",
            "FORMSIGN_ALLOW_REEDIT_AFTER_SUBMIT": "true",
        }
        with mock.patch.dict(os.environ, env):
            loaded = Settings(_env_file=None)
        self.assertEqual(loaded.backend_url, "https://api.example")
        self.assertEqual(loaded.anchor_timeout, 1.5)
        self.assertTrue(loaded.allow_reedit_after_submit)
        self.assertEqual(loaded.party_marker, "lawfirm")


class TestSessionObservers(unittest.TestCase):
    def test_interest_filter_and_unsubscribe(self) -> None:
        observers = SessionObservers()
        everything: list[StateChange] = []
        pages: list[StateChange] = []
        observers.subscribe(everything.append)
        unsubscribe = observers.subscribe(pages.append, ["page"])

        observers.notify("page", 1, 2)
        observers.notify("ready", False, True)
        unsubscribe()
        observers.notify("page", 2, 3)

        self.assertEqual([c.field for c in everything], ["page", "ready", "page"])
        self.assertEqual(pages, [StateChange("page", 1, 2)])

    def test_failing_observer_does_not_block_others(self) -> None:
        observers = SessionObservers()
        seen: list[str] = []

        def broken(change: StateChange) -> None:
            raise ValueError("observer bug")

        observers.subscribe(broken)
        observers.subscribe(lambda change: seen.append(change.field))

        with self.assertLogs("formsign.state.events", level="ERROR"):
            observers.notify("page", 1, 2)
        self.assertEqual(seen, ["page"])


if __name__ == "__main__":
    unittest.main()
