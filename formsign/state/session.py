"""Form annotation and signature session.

The session sequences load -> prefill -> ready -> (edit/sign)* -> confirm ->
submit|reset. Every asynchronous stage is tagged with the generation of the
document it belongs to; results that arrive after a newer load started are
dropped instead of applied.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from enum import Enum
import logging
from typing import Any, Protocol

from formsign.config import settings
from formsign.model.document import PdfDocument
from formsign.model.field import FieldObject, FieldSchema
from formsign.model.form import Form, requestable_forms
from formsign.model.signature import Signature, png_data_uri
from formsign.state.annotations import AnnotationsMap, AnnotationStore, merge_prefill
from formsign.state.errors import (
    ConfirmationDeclined,
    ExtractionError,
    LoadError,
    PrefillWarning,
    Result,
    SessionError,
    SubmissionError,
    WorkflowStateError,
    capture,
)
from formsign.state.events import Observer, SessionObservers
from formsign.state.placement import AnchorLocator, PlacementBinder
from formsign.state.signatures import (
    SignatureClassifier,
    SignatureRegistry,
    SignatureScope,
    is_fully_signed,
)
from formsign.state.submission import SubmissionPipeline, SubmitBackend, build_attachment, build_payload

logger = logging.getLogger(__name__)


class WorkflowState(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    SCHEMA_EXTRACTED = "schema_extracted"
    PREFILLING = "prefilling"
    READY = "ready"
    SUBMITTING = "submitting"
    SUBMITTED = "submitted"


class DocumentEngine(Protocol):
    async def load_document(self, source: str) -> PdfDocument: ...

    async def extract_field_schema(self, document: PdfDocument) -> FieldSchema: ...

    async def initialize_annotations(self, document: PdfDocument, schema: FieldSchema) -> AnnotationsMap: ...


class FormBackend(SubmitBackend, Protocol):
    async def fetch_form_by_token(self, token: str) -> Form: ...


ConfirmCallback = Callable[[str], Awaitable[bool]]
PrefillProvider = Callable[[Form], Awaitable[Mapping[str, Any]]]
ErrorHandler = Callable[[SessionError], None]


class FormSession:
    """Owns one viewer's form, annotations and signatures.

    Observers subscribe to the published attributes by name (``page``,
    ``ready``, ``has_changes`` ...) and are called with a ``StateChange``.
    """

    def __init__(
        self,
        engine: DocumentEngine,
        backend: FormBackend,
        confirm: ConfirmCallback,
        *,
        scope: SignatureScope = SignatureScope.OWN_FIELDS,
        party_marker: str | None = None,
        token: str | None = None,
        prefill: PrefillProvider | None = None,
        locator: AnchorLocator | None = None,
        on_error: ErrorHandler | None = None,
        anchor_timeout: float | None = None,
        allow_reedit_after_submit: bool | None = None,
    ) -> None:
        self._engine = engine
        self._backend = backend
        self._confirm = confirm
        self._prefill = prefill
        self._on_error = on_error
        self._token = token
        self._allow_reedit = (
            settings.allow_reedit_after_submit
            if allow_reedit_after_submit is None
            else allow_reedit_after_submit
        )

        self.observers = SessionObservers()
        self.classifier = SignatureClassifier(scope, party_marker or settings.party_marker)
        self.registry = SignatureRegistry()
        self.locator = locator or AnchorLocator()
        self._store = AnnotationStore()
        self._pipeline = SubmissionPipeline(backend)
        self._binder = PlacementBinder(
            self.locator,
            self.registry,
            self.classifier,
            on_select=self.select_signature_field,
            timeout=settings.anchor_timeout if anchor_timeout is None else anchor_timeout,
        )

        self._generation = 0
        self._documents: list[Form] = []
        self._document: PdfDocument | None = None
        self._schema: FieldSchema | None = None
        self.warnings: list[PrefillWarning] = []

        self._state = WorkflowState.IDLE
        self._form: Form | None = None
        self._page = 1
        self._page_count = 0
        self._ready = False
        self._loading = False
        self._has_changes = False
        self._has_submitted = False
        self._show_sign_modal = False
        self._show_confirm_modal = False
        self._selected_signature_field: FieldObject | None = None
        self._is_fully_signed = True
        self._last_error: SessionError | None = None

    # ------------------------------------------------------------------ #
    #  Published state                                                     #
    # ------------------------------------------------------------------ #
    @property
    def state(self) -> WorkflowState:
        return self._state

    @property
    def form(self) -> Form | None:
        return self._form

    @property
    def page(self) -> int:
        return self._page

    @property
    def page_count(self) -> int:
        return self._page_count

    @property
    def ready(self) -> bool:
        return self._ready

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def has_changes(self) -> bool:
        return self._has_changes

    @property
    def has_submitted(self) -> bool:
        return self._has_submitted

    @property
    def show_sign_modal(self) -> bool:
        return self._show_sign_modal

    @property
    def show_confirm_modal(self) -> bool:
        return self._show_confirm_modal

    @property
    def selected_signature_field(self) -> FieldObject | None:
        return self._selected_signature_field

    @property
    def last_error(self) -> SessionError | None:
        return self._last_error

    @property
    def editable(self) -> bool:
        return self._form.is_signed if self._form is not None else False

    @property
    def is_fully_signed(self) -> bool:
        return is_fully_signed(self._schema, self.registry, self.classifier)

    @property
    def scope(self) -> SignatureScope:
        return self.classifier.scope

    @property
    def allow_reedit_after_submit(self) -> bool:
        return self._allow_reedit

    @property
    def token(self) -> str | None:
        return self._token

    @property
    def document(self) -> PdfDocument | None:
        return self._document

    @property
    def schema(self) -> FieldSchema | None:
        return self._schema

    @property
    def annotations(self) -> AnnotationsMap:
        return self._store.snapshot()

    @property
    def requestable_forms(self) -> list[Form]:
        return requestable_forms(self._documents)

    def subscribe(self, callback: Observer, fields: Iterable[str] | None = None) -> Callable[[], None]:
        return self.observers.subscribe(callback, fields)

    def set_documents(self, forms: Iterable[Form]) -> None:
        self._documents = list(forms)

    def signature_fields(self) -> dict[str, tuple[FieldObject, ...]]:
        return self.classifier.signature_fields(self._schema)

    # ------------------------------------------------------------------ #
    #  Loading                                                             #
    # ------------------------------------------------------------------ #
    async def select_form(self, form_id: str) -> Result[FieldSchema]:
        form = next((f for f in self.requestable_forms if f.id == form_id), None)
        if form is None:
            logger.warning("No requestable form with id %s", form_id)
            return Result(error=LoadError(f"No requestable form with id {form_id}."))
        self._set("has_submitted", False)
        return await self.load(form)

    async def bootstrap(self, token: str) -> Result[FieldSchema]:
        """Fetch the form a counterparty was invited to and load it."""
        self._token = token
        generation = self._begin(None)
        logger.info("Requesting form for response token")
        fetched = await capture(self._backend.fetch_form_by_token(token), LoadError)
        if generation != self._generation:
            return self._superseded(generation)
        if fetched.error is not None:
            return self._fail(fetched.error)
        self._set("has_submitted", False)
        return await self._load(fetched.unwrap(), generation)

    async def load(self, form: Form) -> Result[FieldSchema]:
        return await self._load(form, self._begin(form))

    def _begin(self, form: Form | None) -> int:
        self._generation += 1
        self._binder.cancel()
        self.locator.withdraw_all()
        if self._document is not None:
            self._document.close()
            self._document = None
        self._schema = None
        self._store.clear()
        self.warnings = []

        if form is not None:
            self._set("form", form)
        self._set("ready", False)
        self._set("loading", True)
        self._set("has_changes", False)
        self._set("page", 1)
        self._set("page_count", 0)
        self._set("selected_signature_field", None)
        self._set("show_sign_modal", False)
        self._set("last_error", None)
        self._transition(WorkflowState.LOADING)
        self._publish_signed()
        return self._generation

    async def _load(
        self,
        form: Form,
        generation: int,
        final_state: WorkflowState = WorkflowState.READY,
    ) -> Result[FieldSchema]:
        self._set("form", form)
        logger.info("Loading form %s from %s", form.id, form.source_url)

        loaded = await capture(self._engine.load_document(form.source_url), LoadError)
        if generation != self._generation:
            if loaded.ok:
                loaded.unwrap().close()
            return self._superseded(generation)
        if loaded.error is not None:
            return self._fail(loaded.error)
        document = loaded.unwrap()
        self._document = document
        self._set("page_count", document.page_count)

        extracted = await capture(self._engine.extract_field_schema(document), ExtractionError)
        if generation != self._generation:
            return self._superseded(generation)
        if extracted.error is not None:
            return self._fail(extracted.error)
        schema = extracted.unwrap()
        self._schema = schema
        self._transition(WorkflowState.SCHEMA_EXTRACTED)

        self._transition(WorkflowState.PREFILLING)
        seeded = await capture(self._engine.initialize_annotations(document, schema), ExtractionError)
        if generation != self._generation:
            return self._superseded(generation)
        if seeded.error is not None:
            return self._fail(seeded.error)

        external = await self._fetch_prefill(form)
        if generation != self._generation:
            return self._superseded(generation)

        merged = merge_prefill(seeded.unwrap(), external, schema)
        if not external:
            self._warn(PrefillWarning("Prefill data is empty; using document defaults."))
        elif merged.unmatched:
            self._warn(PrefillWarning(f"No field object for prefill keys: {', '.join(merged.unmatched)}"))
        self._store.replace(schema, merged.annotations)

        self._set("loading", False)
        self._set("ready", True)
        self._transition(final_state)
        self._publish_signed()
        self._binder.bind(schema, generation)
        logger.info("Form %s ready: %s page(s), %r", form.id, document.page_count, schema)
        return Result(value=schema)

    async def _fetch_prefill(self, form: Form) -> Mapping[str, Any]:
        if self._prefill is None:
            return {}
        try:
            return dict(await self._prefill(form))
        except Exception as exc:
            self._warn(PrefillWarning(f"Prefill data unavailable: {exc}"))
            return {}

    def _warn(self, warning: PrefillWarning) -> None:
        logger.warning("%s", warning.message)
        self.warnings.append(warning)

    def _fail(self, error: SessionError) -> Result[Any]:
        logger.error("Loading failed (%s): %s", error.kind.value, error.message)
        self._set("loading", False)
        self._set("last_error", error)
        self._transition(WorkflowState.IDLE)
        if self._on_error is not None:
            self._on_error(error)
        return Result(error=error)

    def _superseded(self, generation: int) -> Result[Any]:
        logger.debug("Discarding result of load %s, current load is %s", generation, self._generation)
        return Result(error=LoadError("Load superseded by a newer document."))

    # ------------------------------------------------------------------ #
    #  Navigation and edits                                                #
    # ------------------------------------------------------------------ #
    def previous_page(self) -> bool:
        return self.goto_page(self._page - 1)

    def next_page(self) -> bool:
        if self._document is None:
            return False
        return self.goto_page(self._page + 1)

    def goto_page(self, page: int) -> bool:
        if page < 1 or page > self._page_count:
            logger.debug("Ignoring navigation to page %s of %s", page, self._page_count)
            return False
        self._set("page", page)
        return True

    def edit(self, update: Mapping[str, Any]) -> bool:
        """Record a user edit coming from the rendered form widgets."""
        if self._state is not WorkflowState.READY:
            logger.debug("Ignoring edit while %s", self._state.value)
            return False
        applied = self._store.apply(update)
        logger.debug("Annotation update %s", applied)
        self._set("has_changes", True)
        return True

    # ------------------------------------------------------------------ #
    #  Signatures                                                          #
    # ------------------------------------------------------------------ #
    def select_signature_field(self, field: FieldObject) -> None:
        self._set("selected_signature_field", field)
        self._set("show_sign_modal", not self._show_sign_modal)

    def close_sign_modal(self) -> None:
        self._set("show_sign_modal", False)

    def record_signature(self, field_name: str, image_data: str | bytes) -> Signature | None:
        if self._state is not WorkflowState.READY:
            logger.warning("Cannot record a signature for %s while %s", field_name, self._state.value)
            self._set("show_sign_modal", False)
            return None
        data_uri = png_data_uri(image_data) if isinstance(image_data, bytes) else image_data
        signature = Signature(field_name=field_name, data_uri=data_uri)
        self.registry.record(signature)
        self._set("show_sign_modal", False)
        self.observers.notify("signatures", None, signature)
        self._binder.refresh(field_name)
        self._publish_signed()
        return signature

    def place_signatures(self) -> None:
        """Run another binder pass, e.g. after the viewer rendered new pages."""
        if self._schema is not None and self._ready:
            self._binder.run_pass()

    async def wait_for_placements(self) -> None:
        await self._binder.wait_idle()

    def _publish_signed(self) -> None:
        self._set("is_fully_signed", self.is_fully_signed)

    # ------------------------------------------------------------------ #
    #  Confirmed actions                                                   #
    # ------------------------------------------------------------------ #
    def _can_reset(self) -> bool:
        if self._state is WorkflowState.READY:
            return True
        return self._state is WorkflowState.SUBMITTED and self._allow_reedit

    async def confirm_then_reset(self, message: str | None = None) -> Result[FieldSchema]:
        if not self._can_reset():
            return self._reject("reset")
        declined = await self._ask(message or settings.reset_prompt, "reset form")
        if declined is not None:
            return Result(error=declined)
        return await self.reset()

    async def reset(self) -> Result[FieldSchema]:
        if not self._can_reset():
            return self._reject("reset")
        self.registry.clear()
        self._set("has_submitted", False)
        if self._token:
            return await self.bootstrap(self._token)
        if self._form is None:
            return Result(error=LoadError("No form selected."))
        return await self.load(self._form)

    async def confirm_then_submit(self, message: str | None = None) -> Result[Form]:
        if self._state is not WorkflowState.READY:
            return self._reject("submit")
        declined = await self._ask(message or settings.submit_prompt, "submit form")
        if declined is not None:
            return Result(error=declined)
        return await self.submit()

    async def submit(self) -> Result[Form]:
        if self._state is not WorkflowState.READY:
            return self._reject("submit")

        generation = self._generation
        payload = build_payload(self._store.snapshot(), self.registry, self._token or "")
        self._transition(WorkflowState.SUBMITTING)
        submitted = await capture(self._pipeline.submit(payload), SubmissionError)
        if generation != self._generation:
            return submitted

        if submitted.error is not None:
            self._transition(WorkflowState.READY)
            self._set("last_error", submitted.error)
            if self._on_error is not None:
                self._on_error(submitted.error)
            return submitted

        form = submitted.unwrap()
        self._set("has_submitted", True)
        self._set("has_changes", False)
        self._transition(WorkflowState.SUBMITTED)
        logger.info("Document submitted: %s", form.id)
        await self._load(form, self._begin(form), final_state=WorkflowState.SUBMITTED)
        return submitted

    def build_attachment(self) -> Result[dict[str, Any]]:
        """The selected form with current values and signatures, for sending onwards."""
        if self._state is not WorkflowState.READY or self._form is None:
            return self._reject("attach")
        payload = build_payload(self._store.snapshot(), self.registry, self._token or "")
        return Result(value=build_attachment(self._form, payload))

    async def _ask(self, message: str, action: str) -> ConfirmationDeclined | None:
        self._set("show_confirm_modal", True)
        try:
            accepted = await self._confirm(message)
        except ConfirmationDeclined:
            accepted = False
        finally:
            self._set("show_confirm_modal", False)
        if accepted:
            return None
        logger.info("The user cancelled the %s action.", action)
        return ConfirmationDeclined(f"The user cancelled the {action} action.")

    def _reject(self, action: str) -> Result[Any]:
        logger.warning("Cannot %s while the session is %s", action, self._state.value)
        return Result(error=WorkflowStateError(f"Cannot {action} while {self._state.value}."))

    # ------------------------------------------------------------------ #
    #  Internals                                                           #
    # ------------------------------------------------------------------ #
    def _transition(self, state: WorkflowState) -> None:
        if state is not self._state:
            logger.debug("Session %s -> %s", self._state.value, state.value)
        self._set("state", state)

    def _set(self, name: str, value: Any) -> None:
        attribute = f"_{name}"
        old = getattr(self, attribute)
        if old == value:
            return
        setattr(self, attribute, value)
        self.observers.notify(name, old, value)

    def close(self) -> None:
        self._generation += 1
        self._binder.cancel()
        self.locator.withdraw_all()
        if self._document is not None:
            self._document.close()
            self._document = None
