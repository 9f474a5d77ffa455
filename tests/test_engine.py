"""Unit tests for the form engine.

Tests cover:
- Construction and initial values
- on_field_change: value commit, single-field revalidation, hook
- on_field_blur: validation context, no value mutation
- submit: full revalidation, submission gate, confirmation sequence
- reset: defaults, error clearing, hook
- Success banner timer (manual and threaded), theme toggle and close
- Bounded event trail
"""

import threading
import time

import pytest

from formstate.config import FormConfig
from formstate.engine import FormEngine
from formstate.errors import FormClosedError, UnknownFieldError
from formstate.events import EventEmitter
from formstate.scheduler import ManualScheduler
from formstate.schema import FieldDescriptor, FieldSchema
from formstate.types import EventType, FormPhase
from formstate.validation import chain, email, matches_field, required


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def schema():
    return FieldSchema([
        FieldDescriptor(name="name", label="Full Name", validate=required("Name is required")),
        FieldDescriptor(
            name="email", label="Email", kind="email",
            validate=chain(required("Email is required"), email("Invalid email format")),
        ),
        FieldDescriptor(name="country", label="Country", default_value="NZ"),
    ])


@pytest.fixture
def calls():
    return {"submit": [], "change": [], "reset": [], "theme": []}


@pytest.fixture
def engine(schema, scheduler, calls):
    form = FormEngine(
        schema,
        on_submit=calls["submit"].append,
        on_field_change=lambda name, value, values: calls["change"].append((name, value, values)),
        on_reset=lambda: calls["reset"].append(True),
        on_theme_toggle=calls["theme"].append,
        scheduler=scheduler,
        form_id="form_test",
    )
    yield form
    form.close()


def fill_valid(engine):
    engine.on_field_change("name", "Ada Lovelace")
    engine.on_field_change("email", "ada@example.com")


class TestConstruction:
    """Test engine construction."""

    def test_values_seeded_empty(self, engine):
        """Should start every field empty, with no errors, IDLE."""
        assert engine.values == {"name": "", "email": "", "country": ""}
        assert engine.errors == {}
        assert engine.phase == FormPhase.IDLE
        assert engine.submission_pending is False

    def test_initial_values(self, schema, scheduler):
        """Should seed values from initial_values."""
        with FormEngine(schema, initial_values={"name": "Ada"}, scheduler=scheduler) as form:
            assert form.values == {"name": "Ada", "email": "", "country": ""}

    def test_initial_values_unknown_field(self, schema):
        """Should reject initial values for fields outside the schema."""
        with pytest.raises(UnknownFieldError):
            FormEngine(schema, initial_values={"phone": "123"})

    def test_schema_from_dicts(self, scheduler):
        """Should accept widget-style dicts as the schema."""
        with FormEngine([{"name": "about", "type": "textarea"}], scheduler=scheduler) as form:
            assert form.schema.names() == ["about"]

    def test_generated_form_id(self, schema, scheduler):
        """Should generate a form id when none is given."""
        with FormEngine(schema, scheduler=scheduler) as form:
            assert form.form_id.startswith("form_")

    def test_dark_mode_from_config(self, schema, scheduler):
        """Should take the initial theme from the config."""
        with FormEngine(schema, config=FormConfig(dark_mode=True), scheduler=scheduler) as form:
            assert form.dark_mode is True


class TestFieldChange:
    """Test on_field_change."""

    def test_commits_value(self, engine):
        """Should store the new value."""
        engine.on_field_change("name", "Ada")
        assert engine.values["name"] == "Ada"
        assert engine.value("name") == "Ada"

    def test_sets_and_clears_error(self, engine):
        """Should record a failing message and drop it once valid."""
        engine.on_field_change("email", "bad")
        assert engine.errors == {"email": "Invalid email format"}
        assert engine.error("email") == "Invalid email format"

        engine.on_field_change("email", "a@b.com")
        assert engine.errors == {}
        assert engine.error("email") is None

    def test_only_changed_field_revalidated(self, engine):
        """Should leave other fields' errors untouched."""
        engine.submit()
        before = engine.errors
        engine.on_field_change("email", "a@b.com")

        after = engine.errors
        assert after["name"] == before["name"]
        assert "email" not in after

    def test_field_without_validator(self, engine):
        """Should not add errors for fields without a validator."""
        engine.on_field_change("country", "")
        assert engine.errors == {}

    def test_hook_receives_updated_values(self, engine, calls):
        """Should call the change hook after the state mutation."""
        engine.on_field_change("name", "Ada")
        assert calls["change"] == [("name", "Ada", {"name": "Ada", "email": "", "country": ""})]

    def test_hook_sees_committed_state(self, schema, scheduler):
        """Should have stored the value before the hook runs."""
        seen = []
        with FormEngine(schema, scheduler=scheduler) as form:
            form._on_field_change = lambda name, value, values: seen.append(form.values[name])
            form.on_field_change("name", "Ada")
        assert seen == ["Ada"]

    def test_unknown_field_rejected(self, engine, calls):
        """Should fail fast without creating a phantom entry."""
        with pytest.raises(UnknownFieldError):
            engine.on_field_change("phone", "123")
        assert "phone" not in engine.values
        assert calls["change"] == []

    def test_cross_field_uses_post_change_values(self, scheduler):
        """Should validate against the values including this change."""
        schema = FieldSchema([
            FieldDescriptor(name="password"),
            FieldDescriptor(name="confirm", validate=matches_field("password", "Passwords do not match")),
        ])
        with FormEngine(schema, scheduler=scheduler) as form:
            form.on_field_change("password", "s3cret")
            form.on_field_change("confirm", "s3cret")
            assert form.errors == {}

            form.on_field_change("password", "changed")
            # confirm is not revalidated by a change to password
            assert form.errors == {}

    def test_records_event(self, engine):
        """Should record a change event with the resulting error."""
        engine.on_field_change("email", "bad")
        event = engine.get_events()[-1]
        assert event.type == EventType.FIELD_CHANGED
        assert event.payload == {"field": "email", "error": "Invalid email format"}

    def test_validator_exception_propagates(self, scheduler):
        """Should not swallow errors raised by validators."""
        def broken(value, values):
            raise RuntimeError("validator bug")

        with FormEngine([FieldDescriptor(name="x", validate=broken)], scheduler=scheduler) as form:
            with pytest.raises(RuntimeError):
                form.on_field_change("x", "1")


class TestFieldBlur:
    """Test on_field_blur."""

    def test_sets_error_without_changing_values(self, engine):
        """Should validate the blurred value and leave values alone."""
        engine.on_field_blur("email", "bad")
        assert engine.errors == {"email": "Invalid email format"}
        assert engine.values["email"] == ""

    def test_clears_error(self, engine):
        """Should clear the error once the blurred value is valid."""
        engine.on_field_change("email", "bad")
        engine.on_field_blur("email", "a@b.com")
        assert engine.errors == {}

    def test_context_is_committed_values(self, scheduler):
        """Should pass the committed values, not the blurred value, as context."""
        contexts = []

        def capture(value, values):
            contexts.append((value, dict(values)))
            return ""

        with FormEngine([FieldDescriptor(name="name", validate=capture)], scheduler=scheduler) as form:
            form.on_field_change("name", "Ad")
            form.on_field_blur("name", "Ada")

        assert contexts[-1] == ("Ada", {"name": "Ad"})

    def test_no_change_hook(self, engine, calls):
        """Should not call the change hook on blur."""
        engine.on_field_blur("name", "Ada")
        assert calls["change"] == []

    def test_unknown_field_rejected(self, engine):
        """Should reject unknown field names on blur."""
        with pytest.raises(UnknownFieldError):
            engine.on_field_blur("phone", "123")

    def test_records_event(self, engine):
        """Should record a blur event."""
        engine.on_field_blur("name", "")
        assert engine.get_events()[-1].type == EventType.FIELD_BLURRED


class TestSubmit:
    """Test submit and the confirmation sequence."""

    def test_rejected_submit(self, engine, calls):
        """Should surface every failing field and fire no hook."""
        result = engine.submit()
        assert result.is_valid is False
        assert engine.errors == {"name": "Name is required", "email": "Email is required"}
        assert engine.phase == FormPhase.IDLE
        assert calls["submit"] == []

    def test_accepted_submit(self, engine, calls):
        """Should fire the submit hook once with the full values."""
        fill_valid(engine)
        result = engine.submit()

        assert result.is_valid is True
        assert engine.errors == {}
        assert engine.phase == FormPhase.IDLE
        assert calls["submit"] == [{"name": "Ada Lovelace", "email": "ada@example.com", "country": ""}]

    def test_submit_replaces_stale_errors(self, engine):
        """Should drop errors of fields that are valid now."""
        engine.on_field_blur("email", "bad")
        engine.on_field_change("name", "Ada")
        engine._state.values["email"] = "ada@example.com"

        engine.submit()
        assert engine.errors == {}

    def test_submit_hook_gets_snapshot(self, engine, calls):
        """Should pass a copy that later changes do not affect."""
        fill_valid(engine)
        engine.submit()
        engine.on_field_change("name", "Changed")
        assert calls["submit"][0]["name"] == "Ada Lovelace"

    def test_each_accepted_submit_fires_once(self, engine, calls):
        """Should fire the hook once per accepted submit."""
        fill_valid(engine)
        engine.submit()
        engine.submit()
        assert len(calls["submit"]) == 2

    def test_confirmation_events(self, engine):
        """Should record passed, pending and confirmed in order."""
        fill_valid(engine)
        engine.submit()
        types = [e.type for e in engine.get_events()][-3:]
        assert types == [
            EventType.VALIDATION_PASSED,
            EventType.SUBMISSION_PENDING,
            EventType.SUBMISSION_CONFIRMED,
        ]

    def test_failed_validation_event(self, engine):
        """Should record the failing errors on a rejected submit."""
        engine.submit()
        event = engine.get_events()[-1]
        assert event.type == EventType.VALIDATION_FAILED
        assert set(event.payload["errors"]) == {"name", "email"}

    def test_pending_is_observable_from_hook(self, schema, scheduler):
        """Should leave PENDING_CONFIRMATION before the submit hook runs."""
        phases = []
        emitter = EventEmitter()
        emitter.on(EventType.SUBMISSION_PENDING, lambda e: phases.append(e.phase))

        with FormEngine(schema, emitter=emitter, scheduler=scheduler) as form:
            form._on_submit = lambda values: phases.append(form.phase)
            fill_valid(form)
            form.submit()

        assert phases == [FormPhase.PENDING_CONFIRMATION, FormPhase.IDLE]

    def test_confirmation_guard_drops_submission_with_errors(self, engine, calls):
        """Should not fire the hook if errors exist while pending."""
        engine._state.machine.transition_to(FormPhase.PENDING_CONFIRMATION)
        engine._state.errors = {"name": "Name is required"}

        engine._confirm_submission()
        assert engine.phase == FormPhase.IDLE
        assert calls["submit"] == []


class TestReset:
    """Test reset."""

    def test_restores_defaults_and_clears_errors(self, engine, calls):
        """Should restore defaults, clear errors and call the reset hook."""
        engine.on_field_change("name", "Ada")
        engine.on_field_change("country", "AU")
        engine.submit()

        engine.reset()
        assert engine.values == {"name": "", "email": "", "country": "NZ"}
        assert engine.errors == {}
        assert engine.phase == FormPhase.IDLE
        assert calls["reset"] == [True]

    def test_skips_validation(self, engine):
        """Should not produce errors for empty required defaults."""
        engine.reset()
        assert engine.errors == {}

    def test_idempotent(self, engine):
        """Should give the same values and errors when reset twice."""
        engine.on_field_change("email", "bad")
        engine.reset()
        first = (engine.values, engine.errors)
        engine.reset()
        assert (engine.values, engine.errors) == first

    def test_no_submit_hook(self, engine, calls):
        """Should not fire the submit hook again on reset."""
        fill_valid(engine)
        engine.submit()
        engine.reset()
        assert len(calls["submit"]) == 1

    def test_records_event(self, engine):
        """Should record a reset event."""
        engine.reset()
        assert engine.get_events()[-1].type == EventType.FORM_RESET


class TestSuccessBanner:
    """Test the success-banner timer."""

    def test_banner_runs_for_duration(self, engine, scheduler):
        """Should show the banner until the timer fires."""
        fill_valid(engine)
        engine.submit()
        assert engine.success_banner_visible is True

        scheduler.advance(4999)
        assert engine.success_banner_visible is True

        scheduler.advance(1)
        assert engine.success_banner_visible is False
        assert engine.get_events()[-1].type == EventType.BANNER_EXPIRED

    def test_banner_expiry_leaves_state_alone(self, engine, scheduler):
        """Should leave values, errors and phase untouched on expiry."""
        fill_valid(engine)
        engine.submit()
        values, errors, phase = engine.values, engine.errors, engine.phase

        scheduler.advance(5000)
        assert (engine.values, engine.errors, engine.phase) == (values, errors, phase)

    def test_no_banner_for_zero_duration(self, schema, scheduler):
        """Should not start a banner when the duration is zero."""
        with FormEngine(schema, config=FormConfig(success_duration_ms=0), scheduler=scheduler) as form:
            fill_valid(form)
            form.submit()
            assert form.success_banner_visible is False
            assert scheduler.pending_count == 0

    def test_no_banner_on_rejected_submit(self, engine, scheduler):
        """Should not start a banner when submit is rejected."""
        engine.submit()
        assert scheduler.pending_count == 0

    def test_new_submit_replaces_banner(self, engine, scheduler):
        """Should replace an older banner timer with a new one."""
        fill_valid(engine)
        engine.submit()
        scheduler.advance(3000)
        engine.submit()

        assert scheduler.pending_count == 1
        scheduler.advance(2000)
        assert engine.success_banner_visible is True

    def test_reset_cancels_banner(self, engine, scheduler):
        """Should cancel a running banner on reset."""
        fill_valid(engine)
        engine.submit()
        engine.reset()
        assert engine.success_banner_visible is False
        assert scheduler.pending_count == 0

    def test_close_cancels_banner(self, engine, scheduler):
        """Should release the timer so it never fires after close."""
        fill_valid(engine)
        engine.submit()
        events_before = len(engine.get_events())

        engine.close()
        assert scheduler.advance(10000) == 0
        assert len(engine.get_events()) == events_before


class TestThreadedBanner:
    """Test banner expiry with the default wall-clock scheduler."""

    def test_expiry_reported_on_engine_thread(self, schema):
        """Should dispatch banner.expired on the thread driving the engine."""
        on_engine_thread = []
        emitter = EventEmitter()
        emitter.on(
            EventType.BANNER_EXPIRED,
            lambda event: on_engine_thread.append(threading.current_thread() is threading.main_thread()),
        )

        with FormEngine(schema, config=FormConfig(success_duration_ms=1), emitter=emitter) as form:
            fill_valid(form)
            form.submit()

            deadline = time.monotonic() + 5
            while form.success_banner_visible and time.monotonic() < deadline:
                time.sleep(0.005)

            assert form.success_banner_visible is False
            assert on_engine_thread == [True]
            assert form.get_events()[-1].type == EventType.BANNER_EXPIRED

    def test_elapsed_timer_records_nothing_until_polled(self, schema, scheduler):
        """Should leave the event trail alone when the timer elapses."""
        with FormEngine(schema, scheduler=scheduler) as form:
            fill_valid(form)
            form.submit()
            count = len(form.get_events())

            scheduler.advance(5000)
            assert len(form.get_events()) == count

            form.poll()
            assert len(form.get_events()) == count + 1
            form.poll()
            assert len(form.get_events()) == count + 1


class TestEventTrail:
    """Test the bounded event trail."""

    def test_trail_capped_by_config(self, schema, scheduler):
        """Should keep only the most recent events when many changes are made."""
        config = FormConfig(max_events=50)
        with FormEngine(schema, config=config, scheduler=scheduler) as form:
            for i in range(10000):
                form.on_field_change("name", f"Ada {i}")
            form.reset()

            events = form.get_events()
            assert len(events) == 50
            assert events[-1].type == EventType.FORM_RESET
            assert events[-2].payload["field"] == "name"

    def test_default_cap(self, schema, scheduler):
        """Should bound the trail even without explicit configuration."""
        with FormEngine(schema, scheduler=scheduler) as form:
            for i in range(1500):
                form.on_field_blur("email", "bad")
            assert len(form.get_events()) == FormConfig().max_events


class TestThemeAndLifecycle:
    """Test theme toggling and close."""

    def test_toggle_theme(self, engine, calls):
        """Should flip dark mode and report each new mode to the hook."""
        assert engine.toggle_theme() is True
        assert engine.toggle_theme() is False
        assert calls["theme"] == [True, False]
        assert engine.get_events()[-1].payload == {"darkMode": False}

    def test_operations_after_close(self, engine):
        """Should reject operations once closed; close itself is idempotent."""
        engine.close()
        engine.close()
        assert engine.closed is True
        with pytest.raises(FormClosedError):
            engine.on_field_change("name", "Ada")
        with pytest.raises(FormClosedError):
            engine.submit()
        with pytest.raises(FormClosedError):
            engine.reset()

    def test_context_manager_closes(self, schema, scheduler):
        """Should close the engine when the with-block exits."""
        with FormEngine(schema, scheduler=scheduler) as form:
            pass
        assert form.closed is True


class TestRendererViews:
    """Test controls() and snapshot()."""

    def test_controls_in_schema_order(self, engine):
        """Should describe every field with its current value and error."""
        engine.on_field_change("email", "bad")
        controls = engine.controls()
        assert [c.name for c in controls] == ["name", "email", "country"]
        assert controls[1].input_type == "email"
        assert controls[1].value == "bad"
        assert controls[1].error == "Invalid email format"

    def test_snapshot(self, engine):
        """Should summarize the session for renderers."""
        engine.on_field_change("name", "Ada")
        assert engine.snapshot() == {
            "formId": "form_test",
            "phase": "idle",
            "values": {"name": "Ada", "email": "", "country": ""},
            "errors": {},
            "darkMode": False,
            "successBannerVisible": False,
        }

    def test_values_are_copies(self, engine):
        """Should hand out copies of values and errors."""
        engine.values["name"] = "mutated"
        engine.errors["name"] = "mutated"
        assert engine.values["name"] == ""
        assert engine.errors == {}
