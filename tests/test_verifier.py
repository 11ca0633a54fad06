from claimautopilot.core.field_specs import mileage_spec, registration_spec
from claimautopilot.core.verifier import (
    normalize_field_value,
    values_match,
    verify_fields_persisted,
)

from fakes import FakeElement, FakePage


def test_numeric_grouping_separators_are_ignored():
    assert values_match("1.000", "1000", numeric=True) is True
    assert values_match("1 000", "1000", numeric=True) is True
    assert values_match("1,000", "1000", numeric=True) is True
    assert values_match("45.000", "45000", numeric=True) is True


def test_text_fields_are_not_grouping_normalized():
    assert values_match("ABC 123", "ABC123", numeric=False) is False
    assert values_match("  ABC123 ", "ABC123", numeric=False) is True


def test_numeric_mismatch_and_empty_target():
    assert values_match("4500", "45000", numeric=True) is False
    assert values_match("", "", numeric=True) is False
    assert normalize_field_value(None, numeric=True) == ""


def test_verify_fields_persisted_reads_back_after_settle():
    mileage = FakeElement(id="customField-input-vehicle_mileage", value="45.000")
    reg = FakeElement(id="txtLicenceNumber", value="9999ZZZ")
    page = FakePage([mileage, reg])
    specs = [mileage_spec(45000), registration_spec("1234ABC")]

    verified = verify_fields_persisted(
        page, specs, {"mileage": True, "registration": True}, settle_ms=0
    )

    assert verified == {"mileage": True, "registration": False}
    assert page.waits == [0]


def test_verify_fields_persisted_skips_fields_that_never_filled():
    page = FakePage([FakeElement(id="txtLicenceNumber", value="1234ABC")])
    verified = verify_fields_persisted(
        page, [registration_spec("1234ABC")], {"registration": False}, settle_ms=0
    )
    assert verified == {"registration": False}
