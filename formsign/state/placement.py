"""Binding of signature overlays to page anchors that appear asynchronously."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
import logging
from typing import Protocol

from formsign.model.field import FieldObject, FieldSchema
from formsign.model.signature import Signature
from formsign.state.signatures import SignatureClassifier, SignatureRegistry

logger = logging.getLogger(__name__)


class Anchor(Protocol):
    """Rendered visual element of one field occurrence."""

    def show_pending(self, field: FieldObject, on_click: Callable[[], None]) -> None: ...

    def show_completed(
        self,
        field: FieldObject,
        signature: Signature,
        on_click: Callable[[], None],
    ) -> None: ...


class AnchorLocator:
    """Resolves anchor keys to anchors as the viewer announces them.

    Waiting for a key shares one future per key, so repeated waits for an
    anchor that has not appeared yet subscribe to the same future.
    """

    def __init__(self) -> None:
        self._anchors: dict[str, Anchor] = {}
        self._waiters: dict[str, asyncio.Future[Anchor]] = {}

    def announce(self, key: str, anchor: Anchor) -> None:
        self._anchors[key] = anchor
        waiter = self._waiters.pop(key, None)
        if waiter is not None and not waiter.done():
            waiter.set_result(anchor)

    def withdraw(self, key: str) -> None:
        self._anchors.pop(key, None)

    def withdraw_all(self) -> None:
        self._anchors.clear()

    def get(self, key: str) -> Anchor | None:
        return self._anchors.get(key)

    async def wait_for(self, key: str, timeout: float) -> Anchor | None:
        anchor = self._anchors.get(key)
        if anchor is not None:
            return anchor

        waiter = self._waiters.get(key)
        if waiter is None or waiter.done():
            waiter = asyncio.get_running_loop().create_future()
            self._waiters[key] = waiter

        try:
            return await asyncio.wait_for(asyncio.shield(waiter), timeout)
        except asyncio.TimeoutError:
            logger.debug("Anchor %s did not appear within %.1fs", key, timeout)
            return None

    def cancel(self) -> None:
        for waiter in self._waiters.values():
            waiter.cancel()
        self._waiters.clear()


def anchor_key(field: FieldObject) -> str:
    return field.id


class PlacementBinder:
    """Keeps one overlay per signature-class field occurrence in sync with the registry."""

    def __init__(
        self,
        locator: AnchorLocator,
        registry: SignatureRegistry,
        classifier: SignatureClassifier,
        on_select: Callable[[FieldObject], None],
        timeout: float = 5.0,
    ) -> None:
        self._locator = locator
        self._registry = registry
        self._classifier = classifier
        self._on_select = on_select
        self._timeout = timeout
        self._schema: FieldSchema | None = None
        self._generation = 0
        self._tasks: dict[str, asyncio.Task[bool]] = {}

    def bind(self, schema: FieldSchema, generation: int) -> None:
        self.cancel()
        self._schema = schema
        self._generation = generation
        self.run_pass()

    def run_pass(self) -> None:
        """Schedule placement for every signature-class field of the bound schema."""
        for fields in self._classifier.signature_fields(self._schema).values():
            for field in fields:
                self._schedule(field)

    def refresh(self, field_name: str) -> None:
        if self._schema is None or not self._classifier.matches(field_name):
            return
        for field in self._schema.get(field_name, ()):
            self._schedule(field)

    def cancel(self) -> None:
        for task in self._tasks.values():
            task.cancel()
        self._tasks.clear()
        self._locator.cancel()
        self._schema = None

    async def wait_idle(self) -> None:
        while self._tasks:
            await asyncio.gather(*list(self._tasks.values()), return_exceptions=True)

    def _schedule(self, field: FieldObject) -> None:
        prior = self._tasks.pop(field.id, None)
        if prior is not None:
            prior.cancel()
        task = asyncio.ensure_future(self._place(field, self._generation))
        self._tasks[field.id] = task
        task.add_done_callback(lambda done, field_id=field.id: self._forget(field_id, done))

    def _forget(self, field_id: str, task: asyncio.Task[bool]) -> None:
        if self._tasks.get(field_id) is task:
            del self._tasks[field_id]

    async def _place(self, field: FieldObject, generation: int) -> bool:
        anchor = await self._locator.wait_for(anchor_key(field), self._timeout)
        if generation != self._generation:
            logger.debug("Dropping stale placement for %s", field.id)
            return False
        if anchor is None:
            logger.info("Signature field %s is not placeable yet", field.name)
            return False
        self.render(field, anchor)
        return True

    def render(self, field: FieldObject, anchor: Anchor) -> None:
        signature = self._registry.get(field.name)

        def on_click() -> None:
            self._on_select(field)

        if signature is not None:
            logger.debug("Found signature for annotation %s", field.id)
            anchor.show_completed(field, signature, on_click)
        else:
            logger.debug("No signature found for annotation %s", field.id)
            anchor.show_pending(field, on_click)
