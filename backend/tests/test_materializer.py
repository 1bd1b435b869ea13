from datetime import UTC, datetime
from decimal import Decimal

from fleetplan.models.enums import OrderStatus, OrderType, RecurringFrequency
from fleetplan.models.recurring_order import OrderPayload, RecurringOrder
from fleetplan.services.recurring.materializer import (
    GenerationOverrides,
    build_internal_notes,
    format_order_number,
    materialize,
)

TEMPLATE_ID = "01HQ7ZV3M2K8Y6R4T9W1ABCDEF"


def _template(**overrides: object) -> RecurringOrder:
    values: dict[str, object] = {
        "id": TEMPLATE_ID,
        "tenant_id": "tenant-1",
        "name": "Gdansk shuttle",
        "frequency": RecurringFrequency.DAILY,
        "start_date": datetime(2024, 1, 1, 8, tzinfo=UTC),
        "next_generation_date": datetime(2024, 5, 6, 8, tzinfo=UTC),
        "type": OrderType.FORWARDING,
        "contractor_id": "contractor-9",
        "origin": "Gdansk port",
        "destination": "Lodz DC",
        "cargo_weight": 18000.0,
        "price_net": Decimal("2450.00"),
        "currency": "EUR",
        "notes": "Call before arrival",
        "internal_notes": "Margin 12%",
        "requires_adr": True,
    }
    values.update(overrides)
    return RecurringOrder(**values)


def test_format_order_number_uses_last_six_id_chars_and_padded_counter() -> None:
    assert format_order_number(TEMPLATE_ID, 1) == "REC-ABCDEF-0001"
    assert format_order_number("01hq7zv3m2k8y6r4t9w1abcdef", 42) == "REC-ABCDEF-0042"
    assert format_order_number(TEMPLATE_ID, 12345) == "REC-ABCDEF-12345"


def test_build_internal_notes() -> None:
    assert build_internal_notes("Shuttle", None) == "Generated automatically from recurring template: Shuttle"
    assert build_internal_notes("Shuttle", "Margin 12%") == (
        "Generated automatically from recurring template: Shuttle\n\nMargin 12%"
    )


def test_materialize_copies_payload_and_sets_provenance() -> None:
    template = _template()
    reference = datetime(2024, 5, 6, 8, tzinfo=UTC)

    draft = materialize(template, reference, order_number="REC-ABCDEF-0003", created_by_id="user-1")

    for name in OrderPayload.model_fields:
        if name != "internal_notes":
            assert getattr(draft, name) == getattr(template, name), name
    assert draft.internal_notes == "Generated automatically from recurring template: Gdansk shuttle\n\nMargin 12%"
    assert draft.tenant_id == "tenant-1"
    assert draft.order_number == "REC-ABCDEF-0003"
    assert draft.status == OrderStatus.PLANNED
    assert draft.recurring_order_id == TEMPLATE_ID
    assert draft.created_by_id == "user-1"
    assert draft.loading_date == reference
    assert draft.unloading_date == reference


def test_materialize_applies_unloading_offset() -> None:
    template = _template(unloading_offset_days=2)
    reference = datetime(2024, 5, 6, 8, tzinfo=UTC)

    draft = materialize(template, reference, order_number="REC-ABCDEF-0001")

    assert draft.unloading_date == datetime(2024, 5, 8, 8, tzinfo=UTC)


def test_materialize_overrides_win() -> None:
    template = _template(unloading_offset_days=2)
    overrides = GenerationOverrides(
        loading_date=datetime(2024, 5, 7, 6, tzinfo=UTC),
        unloading_date=datetime(2024, 5, 7, 18, tzinfo=UTC),
    )

    draft = materialize(template, datetime(2024, 5, 6, 8, tzinfo=UTC), overrides, order_number="REC-ABCDEF-0001")

    assert draft.loading_date == datetime(2024, 5, 7, 6, tzinfo=UTC)
    assert draft.unloading_date == datetime(2024, 5, 7, 18, tzinfo=UTC)


def test_materialize_offset_follows_overridden_loading_date() -> None:
    template = _template(unloading_offset_days=1)
    overrides = GenerationOverrides(loading_date=datetime(2024, 5, 10, 6, tzinfo=UTC))

    draft = materialize(template, datetime(2024, 5, 6, 8, tzinfo=UTC), overrides, order_number="REC-ABCDEF-0001")

    assert draft.unloading_date == datetime(2024, 5, 11, 6, tzinfo=UTC)


def test_materialize_does_not_touch_template() -> None:
    template = _template()
    before = template.model_dump()

    materialize(template, datetime(2024, 5, 6, 8, tzinfo=UTC), order_number="REC-ABCDEF-0001")

    assert template.model_dump() == before
