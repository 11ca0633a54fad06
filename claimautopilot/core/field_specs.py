"""
DAT myClaim 门户的字段目录：各字段的 label 正则、已知 id、name/placeholder 子串。

选择器随门户当前页面结构写死；门户改版时在这里维护。
"""

from __future__ import annotations

from .field_locator import FieldSpec

MILEAGE_LABEL_PATTERNS = (
    r"mileage",
    r"kilometraje",
    r"odometer",
    r"km\s*(reading|stand)",
)
MILEAGE_KNOWN_IDS = (
    "customField-input-vehicle_mileage",
    "customField-input-mileageOdometer",
    "customField-input-vehicle_mileage2",
)
MILEAGE_ATTRIBUTE_SUBSTRINGS = ("mileage", "kilometr", "odometer")

REGISTRATION_LABEL_PATTERNS = (
    r"registration",
    r"licen[cs]e\s*(plate|number)",
    r"matr[ií]cula",
)
REGISTRATION_KNOWN_IDS = (
    "customField-input-vehicle_registration",
    "txtLicenceNumberEs",
    "txtLicenceNumber",
    "customField-input-LicenseNumber",
)
REGISTRATION_ATTRIBUTE_SUBSTRINGS = ("registration", "licence", "license", "plate")

# 「Apertura」页的身份字段 id 稳定，直接 page.fill
IDENTITY_FIELD_IDS = {
    "order_number": "#customField-input-referenceNumber",
    "first_name": "#customField-input-address_firstName",
    "last_name": "#customField-input-address_surname",
}


def mileage_spec(mileage) -> FieldSpec:
    return FieldSpec(
        name="mileage",
        value=str(mileage),
        label_patterns=MILEAGE_LABEL_PATTERNS,
        known_ids=MILEAGE_KNOWN_IDS,
        attribute_substrings=MILEAGE_ATTRIBUTE_SUBSTRINGS,
        numeric=True,
    )


def registration_spec(registration: str) -> FieldSpec:
    return FieldSpec(
        name="registration",
        value=str(registration).strip(),
        label_patterns=REGISTRATION_LABEL_PATTERNS,
        known_ids=REGISTRATION_KNOWN_IDS,
        attribute_substrings=REGISTRATION_ATTRIBUTE_SUBSTRINGS,
    )
