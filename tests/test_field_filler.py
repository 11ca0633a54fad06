from claimautopilot.core.field_filler import TERMINAL_STATES, FieldFiller, fill_field
from claimautopilot.core.field_locator import FieldSpec, Strategy
from claimautopilot.core.value_writer import ValueWriter

from fakes import FakeElement, FakePage


def _spec() -> FieldSpec:
    return FieldSpec(
        name="registration",
        value="1234ABC",
        label_patterns=(r"registration",),
        known_ids=("txtLicenceNumberEs", "txtLicenceNumber"),
        attribute_substrings=("licence",),
    )


def _writer() -> ValueWriter:
    return ValueWriter(settle_ms=0, type_delay_ms=0)


def test_falls_through_to_next_candidate_and_stops_at_first_success():
    read_only = FakeElement(label="Registration", accepts=())
    editable = FakeElement(id="txtLicenceNumberEs")
    never_touched = FakeElement(id="txtLicenceNumber")
    page = FakePage([read_only, editable, never_touched])

    filler = FieldFiller(page, writer=_writer())
    outcome = filler.fill(_spec())

    assert outcome.success is True
    assert outcome.strategy == Strategy.KNOWN_ID
    assert outcome.attempts == 4
    assert filler.state == "succeeded"
    assert read_only.calls == ["type", "script", "fill"]
    assert editable.value == "1234ABC"
    assert never_touched.calls == []


def test_exhausted_when_field_absent():
    page = FakePage([FakeElement(id="customField-input-vehicle_mileage")])

    filler = FieldFiller(page, writer=_writer())
    outcome = filler.fill(_spec())

    assert outcome.success is False
    assert outcome.strategy is None
    assert outcome.attempts == 0
    assert filler.state == "exhausted"
    assert filler.state in TERMINAL_STATES


def test_logs_every_state_transition():
    messages: list[str] = []
    page = FakePage([FakeElement(id="txtLicenceNumber")])

    fill_field(
        page,
        _spec(),
        writer=_writer(),
        log_fn=lambda msg, level="info": messages.append(msg),
    )

    transitions = [m.split("→ ")[1].split(" ")[0] for m in messages if "→" in m]
    assert transitions == ["searching", "attempting", "succeeded"]
