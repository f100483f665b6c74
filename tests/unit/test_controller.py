"""Unit tests for the account form controller and session registry."""

import json

import pytest
from accountform.controller import AccountFormController
from accountform.core.config import DRAFT_STORAGE_KEY
from accountform.core.exceptions import (
    ClientError,
    FormIncompleteError,
    ResourceNotFoundError,
)
from accountform.drafts.backends import MemoryBackend
from accountform.drafts.store import DraftStore
from accountform.lookup.models import CompanyAddress, SearchResult
from accountform.lookup.search import CompanySearch
from core.settings import FormSettings
from services.form_sessions import FormSessionRegistry


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


class StubRenderer:
    available = True

    def render(self, form_data):
        return b"%PDF-1.4\nrecap"


class StubDispatcher:
    def __init__(self):
        self.payloads = []

    async def dispatch(self, payload):
        self.payloads.append(payload)
        return {"success": True}


class StubDirectory:
    def __init__(self, results=None):
        self.results = results or []

    async def search_by_name(self, name, postal_code=None):
        return list(self.results)


ACME = SearchResult(
    siren="404833048",
    siret="40483304800022",
    legal_name="ACME Industrie",
    naf_ape="62.01Z",
    vat_number="FR83404833048",
    address=CompanyAddress(street="ND", postal_code="75002", city="Paris"),
)


def make_controller(backend=None, directory=None, dispatcher=None):
    return AccountFormController(
        draft_store=DraftStore(backend or MemoryBackend(), key="draft", debounce_seconds=60),
        search=CompanySearch(directory or StubDirectory(), debounce_seconds=0),
        renderer=StubRenderer(),
        dispatcher=dispatcher or StubDispatcher(),
        transition_delay=0,
        session_id="session-1",
    )


class TestFieldUpdates:
    """Tests for live validation and auto-save."""

    @pytest.mark.asyncio
    async def test_live_errors_follow_updated_fields(self):
        controller = make_controller()

        controller.update_fields({"siret": "123"})
        assert "siret" in controller.live_errors

        controller.update_fields({"siret": "40483304800022"})
        assert "siret" not in controller.live_errors

    @pytest.mark.asyncio
    async def test_significant_data_schedules_save(self):
        backend = MemoryBackend()
        controller = make_controller(backend=backend)

        controller.update_fields({"companyName": "ACME"})
        assert controller.draft_store.pending is True

        await controller.close()
        stored = json.loads(backend.get("draft"))
        assert stored["companyName"] == "ACME"
        assert "savedAt" in stored

    @pytest.mark.asyncio
    async def test_blank_values_are_not_saved(self):
        controller = make_controller()

        controller.update_fields({"companyName": "   ", "cgvAccepted": True})

        assert controller.draft_store.pending is False

    @pytest.mark.asyncio
    async def test_resume_drops_saved_at(self):
        backend = MemoryBackend()
        DraftStore(backend, key="draft").save_now({"companyName": "ACME"})
        controller = make_controller(backend=backend)

        draft = controller.resume()

        assert draft["companyName"] == "ACME"
        assert controller.data == {"companyName": "ACME"}


class TestCompanySelection:
    """Tests for copying a registry result into the form."""

    @pytest.mark.asyncio
    async def test_select_company_blanks_placeholders(self):
        controller = make_controller()

        controller.select_company(ACME)

        assert controller.data["companyName"] == "ACME Industrie"
        assert controller.data["tvaIntracom"] == "FR83404833048"
        assert controller.data["address"] == ""
        assert controller.data["postalCode"] == "75002"
        assert controller.search.selected == ACME

    @pytest.mark.asyncio
    async def test_enter_applies_highlighted_result(self):
        controller = make_controller(directory=StubDirectory([ACME]))
        await controller.search.search_now("acme")

        assert controller.handle_search_key("ArrowDown") is True
        assert controller.handle_search_key("Enter") is True

        assert controller.data["siret"] == "40483304800022"
        assert controller.search.show_results is False

    @pytest.mark.asyncio
    async def test_enter_without_highlight_is_ignored(self):
        controller = make_controller(directory=StubDirectory([ACME]))
        await controller.search.search_now("acme")

        assert controller.handle_search_key("Enter") is False
        assert controller.data == {}


class TestCopyHelpers:
    """Tests for the billing and contact copy helpers."""

    @pytest.mark.asyncio
    async def test_copy_billing_to_delivery(self, step_two_record):
        controller = make_controller()
        controller.update_fields(step_two_record)

        controller.copy_billing_to_delivery()

        assert controller.data["deliveryAddress"] == "10 rue de la Paix"
        assert controller.data["deliveryPostalCode"] == "75002"
        assert controller.data["deliveryCity"] == "Paris"

    @pytest.mark.asyncio
    async def test_copy_purchasing_to_accounting(self, step_two_record):
        controller = make_controller()
        controller.update_fields(step_two_record)

        controller.copy_purchasing_to_accounting()

        assert controller.data["serviceComptaEmail"] == "achats@acme.fr"
        assert controller.data["serviceComptaPhone"] == "01 23 45 67 89"


class TestSubmit:
    """Tests for the confirmation flow."""

    @pytest.mark.asyncio
    async def test_incomplete_form_flags_errors(self, step_one_record):
        controller = make_controller()
        controller.update_fields(step_one_record)

        with pytest.raises(FormIncompleteError):
            await controller.submit()

        assert controller.engine.state.step_submit_attempted is True
        assert "address" in controller.engine.field_errors
        assert controller.confirmed is False

    @pytest.mark.asyncio
    async def test_submit_confirms_once(self, complete_record, kbis):
        dispatcher = StubDispatcher()
        controller = make_controller(dispatcher=dispatcher)
        controller.update_fields(complete_record)

        outcome = await controller.submit(kbis)

        assert outcome.delivered is True
        assert controller.confirmed is True
        assert len(dispatcher.payloads) == 1
        assert controller.draft_store.load() is None
        titles = [n["title"] for n in controller.snapshot()["notifications"]]
        assert titles == ["Formulaire soumis avec succès"]

        with pytest.raises(ClientError) as exc_info:
            await controller.submit(kbis)
        assert exc_info.value.http_status == 409
        assert len(dispatcher.payloads) == 1

    @pytest.mark.asyncio
    async def test_reset_clears_everything(self, complete_record, kbis):
        controller = make_controller()
        controller.update_fields(complete_record)
        await controller.next_step()
        await controller.submit(kbis)

        controller.reset()

        snapshot = controller.snapshot()
        assert snapshot["data"] == {}
        assert snapshot["confirmed"] is False
        assert snapshot["outcome"] is None
        assert snapshot["state"]["current_step_id"] == 1
        assert snapshot["progress"] == 0
        assert controller.scrolled_to == 1

        controller.update_fields({"companyName": "ACME"})
        assert controller.data == {"companyName": "ACME"}


class TestConfirmedForm:
    """Tests for the lock placed on a confirmed form."""

    async def confirmed_controller(self, backend, complete_record, kbis, directory=None):
        controller = make_controller(backend=backend, directory=directory)
        controller.update_fields(complete_record)
        await controller.submit(kbis)
        return controller

    @pytest.mark.asyncio
    async def test_edits_after_submit_are_rejected(self, complete_record, kbis):
        backend = MemoryBackend()
        controller = await self.confirmed_controller(backend, complete_record, kbis)

        with pytest.raises(ClientError) as exc_info:
            controller.update_fields({"companyName": "Autre"})
        assert exc_info.value.http_status == 409
        assert exc_info.value.error_code == "ALREADY_SUBMITTED"

        await controller.close()
        assert controller.data["companyName"] == complete_record["companyName"]
        assert controller.draft_store.pending is False
        assert backend.get("draft") is None

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "action",
        [
            lambda c: c.copy_billing_to_delivery(),
            lambda c: c.copy_purchasing_to_accounting(),
            lambda c: c.select_company(ACME),
            lambda c: c.handle_search_key("ArrowDown"),
        ],
    )
    async def test_field_helpers_are_locked(self, action, complete_record, kbis):
        controller = await self.confirmed_controller(MemoryBackend(), complete_record, kbis)

        with pytest.raises(ClientError):
            action(controller)

        assert controller.search.selected is None

    @pytest.mark.asyncio
    async def test_navigation_and_search_are_locked(self, complete_record, kbis):
        directory = StubDirectory([ACME])
        controller = await self.confirmed_controller(
            MemoryBackend(), complete_record, kbis, directory=directory
        )
        step = controller.engine.state.current_step_id

        for action in (
            controller.next_step,
            controller.previous_step,
            lambda: controller.jump_to(1),
            lambda: controller.search_company("acme", immediate=True),
        ):
            with pytest.raises(ClientError):
                await action()

        assert controller.engine.state.current_step_id == step
        assert controller.search.results == []
        assert controller.search.query == ""


class TestNavigation:
    """Tests for step moves through the controller."""

    @pytest.mark.asyncio
    async def test_next_step_scrolls_to_new_step(self, step_one_record):
        controller = make_controller()
        controller.update_fields(step_one_record)

        assert await controller.next_step() is True

        snapshot = controller.snapshot()
        assert snapshot["current_step"] == {"id": 2, "title": "Contact"}
        assert snapshot["progress"] == 33
        assert controller.scrolled_to == 2


class TestFormSessionRegistry:
    """Tests for FormSessionRegistry."""

    def make_registry(self, backend, clock=None):
        return FormSessionRegistry(
            backend=backend,
            directory=StubDirectory(),
            renderer=StubRenderer(),
            dispatcher=StubDispatcher(),
            settings=FormSettings(STEP_TRANSITION_SECONDS=0, SESSION_IDLE_TTL_SECONDS=600),
            **({"clock": clock} if clock else {}),
        )

    def test_open_generates_id(self):
        registry = self.make_registry(MemoryBackend())

        controller = registry.open()

        assert len(controller.session_id) == 32
        assert registry.get(controller.session_id) is controller
        assert len(registry) == 1

    def test_open_invalid_id_generates_new_one(self):
        registry = self.make_registry(MemoryBackend())

        controller = registry.open("../etc")

        assert controller.session_id != "../etc"

    def test_open_resumes_draft(self):
        backend = MemoryBackend()
        DraftStore(backend, key=f"{DRAFT_STORAGE_KEY}:session-abc").save_now(
            {"companyName": "ACME"}
        )
        registry = self.make_registry(backend)

        controller = registry.open("session-abc")

        assert controller.data == {"companyName": "ACME"}

    def test_get_unknown_session(self):
        registry = self.make_registry(MemoryBackend())

        with pytest.raises(ResourceNotFoundError):
            registry.get("missing-session")

    @pytest.mark.asyncio
    async def test_close_all(self):
        registry = self.make_registry(MemoryBackend())
        registry.open()
        registry.open()

        await registry.close_all()

        assert len(registry) == 0

    @pytest.mark.asyncio
    async def test_idle_sessions_are_evicted_with_their_draft(self):
        backend = MemoryBackend()
        clock = FakeClock()
        registry = self.make_registry(backend, clock)
        idle = registry.open("session-idle")
        active = registry.open("session-active")
        idle.update_fields({"companyName": "ACME"})
        assert idle.draft_store.pending is True

        clock.now += 500
        registry.get("session-active")
        clock.now += 200

        assert await registry.evict_stale() == 1

        assert len(registry) == 1
        assert registry.get("session-active") is active
        with pytest.raises(ResourceNotFoundError):
            registry.get("session-idle")
        stored = json.loads(backend.get(f"{DRAFT_STORAGE_KEY}:session-idle"))
        assert stored["companyName"] == "ACME"

        resumed = registry.open("session-idle")
        assert resumed is not idle
        assert resumed.data == {"companyName": "ACME"}

    @pytest.mark.asyncio
    async def test_confirmed_sessions_are_evicted(self, complete_record, kbis):
        registry = self.make_registry(MemoryBackend(), FakeClock())
        controller = registry.open("session-done")
        controller.update_fields(complete_record)
        await controller.submit(kbis)

        assert await registry.evict_stale() == 1

        fresh = registry.open("session-done")
        assert fresh is not controller
        assert fresh.confirmed is False
        assert fresh.data == {}
