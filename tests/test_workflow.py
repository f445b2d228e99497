from decimal import Decimal

import pytest

from conftest import add_line, fill_customer, saved_walk_in, upstream_down, verify_all
from ehutano.core.errors import (
    NotFoundError,
    PharmacyApiError,
    StaleEncounterError,
    WorkflowValidationError,
)
from ehutano.schemas.dispensing import EncounterSource, Tab, ToastVariant


def _titles(wf, variant=None):
    return [t.title for t in wf.toasts.peek() if variant is None or t.variant == variant]


# ---------------- navigation ----------------


def test_no_encounter_until_customer_typed(workflow):
    assert workflow.view().encounter is None
    with pytest.raises(NotFoundError):
        workflow.go_to(Tab.PRESCRIPTION)


def test_customer_gate(workflow):
    workflow.update_customer(first_name="Rudo")
    with pytest.raises(WorkflowValidationError):
        workflow.go_to(Tab.PRESCRIPTION)
    assert workflow.encounter.active_tab == Tab.CUSTOMER
    assert workflow.customer_missing_fields() == ["Last name", "Phone", "ID number"]
    assert "Cannot continue" in _titles(workflow, ToastVariant.DESTRUCTIVE)

    fill_customer(workflow)
    assert workflow.customer_is_valid()
    workflow.go_to(Tab.PRESCRIPTION)
    assert workflow.encounter.active_tab == Tab.PRESCRIPTION


def test_prescription_gate_and_back_navigation(workflow):
    fill_customer(workflow)
    workflow.go_to(Tab.PRESCRIPTION)
    with pytest.raises(WorkflowValidationError):
        workflow.go_to(Tab.SCAN)

    add_line(workflow, 1)
    workflow.go_to(Tab.BATCH)
    assert workflow.encounter.active_tab == Tab.BATCH
    workflow.go_to(Tab.CUSTOMER)
    assert workflow.encounter.active_tab == Tab.CUSTOMER


def test_forward_jump_checks_every_tab_left(workflow):
    fill_customer(workflow)
    add_line(workflow, 1)
    with pytest.raises(WorkflowValidationError, match="Select a payment method"):
        workflow.go_to(Tab.LABELS)
    workflow.go_to(Tab.MEDICAL_AID)
    assert workflow.encounter.active_tab == Tab.MEDICAL_AID


def test_every_mutation_bumps_version(workflow):
    fill_customer(workflow)
    v = workflow.encounter.version
    add_line(workflow, 1)
    assert workflow.encounter.version > v

    v = workflow.encounter.version
    workflow.check_version(v)
    with pytest.raises(StaleEncounterError):
        workflow.check_version(v - 1)


# ---------------- customer ----------------


def test_save_customer_stores_id(workflow, fake_api):
    fill_customer(workflow)
    saved = workflow.save_customer()
    assert saved.id == 42
    assert workflow.encounter.customer.id == 42
    assert "Customer Saved" in _titles(workflow)


def test_save_customer_requires_fields(workflow, fake_api):
    workflow.update_customer(first_name="Rudo")
    with pytest.raises(WorkflowValidationError):
        workflow.save_customer()
    assert fake_api.called("save_customer") == []


def test_save_customer_failure_leaves_state(workflow, fake_api):
    fill_customer(workflow)
    fake_api.fail["save_customer"] = upstream_down()
    with pytest.raises(PharmacyApiError):
        workflow.save_customer()
    assert workflow.encounter.customer.id is None
    assert "Customer not saved" in _titles(workflow, ToastVariant.DESTRUCTIVE)


# ---------------- composer ----------------


def test_short_search_makes_no_call(workflow, fake_api):
    assert workflow.search_medicines("p") == []
    assert fake_api.called("search_medicines") == []
    assert [m.id for m in workflow.search_medicines("para")] == [1]


def test_select_paracetamol_then_add(workflow):
    workflow.search_medicines("para")
    draft = workflow.select_search_result(1)
    assert (draft.quantity, draft.price, draft.dosage) == ("20", "5.00", "500mg")

    workflow.update_draft(instructions="t1 tds pc prn")
    item = workflow.add_item()
    assert item.total == Decimal("5.00")
    assert item.unit_price == Decimal("0.25")
    assert item.interpreted_instructions == \
        "take one tablet three times daily after food when necessary"
    assert workflow.encounter.draft.name == ""


def test_add_item_rejects_incomplete_draft(workflow):
    workflow.update_draft(name="Something")
    with pytest.raises(WorkflowValidationError):
        workflow.add_item()
    assert workflow.encounter.items == []
    assert "Cannot add item" in _titles(workflow, ToastVariant.DESTRUCTIVE)


def test_draft_price_overrides_pack_price(workflow):
    item = add_line(workflow, 1, quantity=10, price="3.00")
    assert item.quantity == 10
    assert item.total == Decimal("3.00")
    assert item.unit_price == Decimal("0.3")


def test_item_edits_and_removal(workflow):
    fill_customer(workflow)
    a = add_line(workflow, 1)
    b = add_line(workflow, 2)

    workflow.update_item(a.id, quantity=10)
    assert a.total == Decimal("2.50")
    workflow.update_item(a.id, unit_price=Decimal("0.30"))
    assert a.total == Decimal("3.00")
    workflow.update_item(a.id, instructions="t2 bd")
    assert a.interpreted_instructions == "take two tablets twice daily"

    assert workflow.update_item(b.id, quantity=0) is None
    assert [i.id for i in workflow.encounter.items] == [a.id]

    workflow.remove_item(a.id)
    assert workflow.encounter.items == []
    with pytest.raises(NotFoundError):
        workflow.remove_item(a.id)


def test_totals_in_view(workflow):
    fill_customer(workflow)
    add_line(workflow, 1)
    add_line(workflow, 2)
    view = workflow.view()
    assert view.subtotal == Decimal("13.40")
    assert view.grand_total == Decimal("14.40")

    workflow.set_dispensing_fee(Decimal("2.5"))
    assert workflow.view().grand_total == Decimal("15.90")
    with pytest.raises(WorkflowValidationError):
        workflow.set_dispensing_fee(Decimal("-1"))


def test_save_prescription(workflow, fake_api):
    fill_customer(workflow)
    add_line(workflow, 1, instructions="t1 tds")
    rx_id = workflow.save_prescription()
    assert rx_id == 1001
    assert workflow.encounter.prescription_id == 1001
    payload = fake_api.called("save_manual_prescription")[0][1]
    assert payload["items"][0]["total"] == "5.00"
    assert payload["total"] == "6.00"


def test_save_prescription_needs_items(workflow, fake_api):
    fill_customer(workflow)
    with pytest.raises(WorkflowValidationError):
        workflow.save_prescription()
    assert fake_api.called("save_manual_prescription") == []


def test_register_custom_medicine(workflow, fake_api):
    from ehutano.schemas.dispensing import CustomMedicineIn

    med = workflow.register_custom_medicine(
        CustomMedicineIn(name="Magistral Cream", unit_price=Decimal("4.00")))
    assert med.id == 99
    assert "Medicine Added" in _titles(workflow)


# ---------------- changes after saving ----------------


def test_adding_a_line_after_save_drops_save_and_scans(workflow, fake_api):
    items = saved_walk_in(workflow, medicine_ids=(1, ))
    verify_all(workflow)

    add_line(workflow, 3)
    enc = workflow.encounter
    assert enc.prescription_id is None
    assert enc.scan_target_id is None
    assert not any(i.verified or i.scanned_barcode for i in enc.items)
    assert "Prescription Changed" in _titles(workflow, ToastVariant.DEFAULT)
    with pytest.raises(WorkflowValidationError):
        workflow.verify_barcode(fake_api.barcodes[1])

    assert workflow.save_prescription() == 1002
    payload = fake_api.called("save_manual_prescription")[1][1]
    assert [i["medicineId"] for i in payload["items"]] == [1, 3]
    verify_all(workflow)
    assert fake_api.called("verify_barcode")[-1][3] == 1002
    assert items[0].verified


@pytest.mark.parametrize("edit", [
    lambda wf, item: wf.update_item(item.id, quantity=5),
    lambda wf, item: wf.update_item(item.id, instructions="t1 bd"),
    lambda wf, item: wf.remove_item(item.id),
])
def test_editing_a_saved_line_drops_save(workflow, edit):
    items = saved_walk_in(workflow)
    verify_all(workflow)
    edit(workflow, items[0])
    assert workflow.encounter.prescription_id is None
    assert not any(i.verified for i in workflow.encounter.items)


def test_rejected_edit_keeps_saved_prescription(workflow):
    items = saved_walk_in(workflow)
    verify_all(workflow)

    with pytest.raises(WorkflowValidationError):
        workflow.update_item(items[0].id, price=Decimal("-1"))
    with pytest.raises(WorkflowValidationError):
        workflow.add_item()
    with pytest.raises(NotFoundError):
        workflow.remove_item("L99")
    workflow.update_item(items[0].id)

    assert workflow.encounter.prescription_id == 1001
    assert all(i.verified for i in items)
    assert "Prescription Changed" not in _titles(workflow)


def test_saved_prescription_is_not_saved_twice(workflow, fake_api):
    saved_walk_in(workflow)
    with pytest.raises(WorkflowValidationError):
        workflow.save_prescription()

    verify_all(workflow)
    version = workflow.encounter.version
    with pytest.raises(WorkflowValidationError):
        workflow.save_prescription()

    assert len(fake_api.called("save_manual_prescription")) == 1
    assert workflow.encounter.prescription_id == 1001
    assert workflow.encounter.version == version
    assert all(i.verified for i in workflow.encounter.items)


def test_pending_prescription_is_read_only(workflow, fake_api):
    enc = workflow.select_pending(501)
    with pytest.raises(WorkflowValidationError):
        workflow.save_prescription()
    with pytest.raises(WorkflowValidationError):
        workflow.update_item("9001", quantity=5)
    with pytest.raises(WorkflowValidationError):
        workflow.remove_item("9002")
    workflow.update_draft(name="Cough Syrup 100ml", quantity="1", price="3.50")
    with pytest.raises(WorkflowValidationError):
        workflow.add_item()

    assert [i.id for i in enc.items] == ["9001", "9002"]
    assert enc.items[0].quantity == 20
    assert enc.prescription_id == 501
    assert fake_api.called("save_manual_prescription") == []


# ---------------- verification ----------------


def test_verify_requires_saved_prescription(workflow, fake_api):
    fill_customer(workflow)
    add_line(workflow, 1)
    with pytest.raises(WorkflowValidationError):
        workflow.verify_barcode("6001234000011")
    assert fake_api.called("verify_barcode") == []
    assert workflow.encounter.scan_input == ""


def test_rejected_scan_leaves_state_unchanged(workflow, fake_api):
    saved_walk_in(workflow)
    assert workflow.verify_barcode("0000000000000") is False
    version = workflow.encounter.version

    with pytest.raises(WorkflowValidationError):
        workflow.verify_barcode("   ")
    assert workflow.encounter.scan_input == "0000000000000"
    assert workflow.encounter.version == version


def test_free_text_item_cannot_be_scanned(workflow, fake_api):
    fill_customer(workflow)
    workflow.update_draft(name="Magistral Cream", quantity="1", price="4.00")
    workflow.add_item()
    workflow.save_prescription()

    with pytest.raises(WorkflowValidationError):
        workflow.verify_barcode("6001234000011")
    assert fake_api.called("verify_barcode") == []
    assert workflow.encounter.scan_input == ""
    assert workflow.encounter.items[0].verified is False
    assert "Cannot verify" in _titles(workflow, ToastVariant.DESTRUCTIVE)


def test_barcode_mismatch_leaves_item_unverified(workflow, fake_api):
    items = saved_walk_in(workflow)
    workflow.set_scan_target(items[0].id)

    assert workflow.verify_barcode("0000000000000") is False
    assert items[0].verified is False
    assert "Verification Failed" in _titles(workflow, ToastVariant.DESTRUCTIVE)
    assert workflow.view().progress == 0.0


def test_barcode_match_verifies_and_moves_on(workflow, fake_api):
    items = saved_walk_in(workflow)
    workflow.set_scan_target(items[0].id)

    assert workflow.verify_barcode("6001234000011") is True
    assert items[0].verified is True
    assert items[0].scanned_barcode == "6001234000011"
    assert workflow.encounter.scan_input == ""
    assert workflow.encounter.scan_target_id == items[1].id
    assert workflow.view().progress == 50.0
    assert fake_api.called("verify_barcode")[0][1:] == ("6001234000011", 1, 1001)


def test_untargeted_scan_uses_next_unverified(workflow, fake_api):
    saved_walk_in(workflow)
    assert workflow.verify_barcode("6001234000011") is True
    assert workflow.encounter.items[0].verified


def test_scan_api_error_is_an_outcome(workflow, fake_api):
    items = saved_walk_in(workflow)
    fake_api.fail["verify_barcode"] = upstream_down()
    assert workflow.verify_barcode("6001234000011") is False
    assert items[0].verified is False


def test_two_of_three_verified(workflow):
    items = saved_walk_in(workflow, medicine_ids=(1, 2, 3))
    for item in items[:2]:
        workflow.set_scan_target(item.id)
        workflow.verify_barcode(workflow.api.barcodes[item.medicine_id])
    view = workflow.view()
    assert view.progress == 66.67
    assert view.verified_count == 2
    assert view.can_complete is False
    assert "1 item(s) not verified" in view.completion_blockers


def test_scan_when_all_verified_makes_no_call(workflow, fake_api):
    saved_walk_in(workflow, medicine_ids=(1, ))
    verify_all(workflow)
    calls = len(fake_api.called("verify_barcode"))
    assert workflow.verify_barcode("6001234000011") is False
    assert len(fake_api.called("verify_barcode")) == calls
    assert "All Items Verified" in _titles(workflow, ToastVariant.DEFAULT)


# ---------------- batches ----------------


def test_batches_are_fefo(workflow):
    fill_customer(workflow)
    options = workflow.batches_for(1)
    assert [b.batch_number for b in options] == ["PCM-SOON", "PCM-LATE"]
    assert options[0].dispense_first
    assert options[0].expiry_status == "critical"


def test_assign_batch_keeps_verification(workflow):
    items = saved_walk_in(workflow)
    verify_all(workflow)
    workflow.assign_batch(items[0].id, "PCM-LATE")
    assert items[0].batch_number == "PCM-LATE"
    assert items[0].stock_quantity == 100
    assert items[0].verified is True

    with pytest.raises(NotFoundError):
        workflow.assign_batch(items[0].id, "AMX-1")


# ---------------- pending prescriptions ----------------


def test_select_pending_loads_unverified_items(workflow):
    enc = workflow.select_pending(501)
    assert enc.source == EncounterSource.PENDING
    assert enc.prescription_id == 501
    assert enc.active_tab == Tab.SCAN
    assert [i.id for i in enc.items] == ["9001", "9002"]
    assert not any(i.verified for i in enc.items)
    assert enc.items[1].total == Decimal("8.40")
    assert enc.items[0].interpreted_instructions == \
        "take two tablets four times daily when necessary"
    assert enc.patient_display_name() == "Tendai Moyo"

    # no walk-in customer needed to move on
    workflow.go_to(Tab.CUSTOMER)
    workflow.go_to(Tab.BATCH)


def test_select_unknown_pending(workflow):
    with pytest.raises(NotFoundError):
        workflow.select_pending(999)


# ---------------- labels ----------------


def test_label_preview(workflow):
    fill_customer(workflow)
    items = [add_line(workflow, 1, instructions="t1 tds pc"), add_line(workflow, 2)]
    workflow.save_prescription()
    label = workflow.preview_label(items[0].id)
    assert label.pharmacy_name == "Avenues Pharmacy"
    assert label.patient_name == "Rudo Ncube"
    assert label.interpreted_instructions == "Take one tablet three times daily after food"
    assert label.barcode_value == f"RX1001-{items[0].id}"

    workflow.assign_batch(items[0].id, "PCM-SOON")
    assert workflow.preview_label(items[0].id).barcode_value == "PCM-SOON"


def test_print_label_needs_verification(workflow, fake_api):
    items = saved_walk_in(workflow)
    with pytest.raises(WorkflowValidationError):
        workflow.print_label(items[0].id)
    with pytest.raises(WorkflowValidationError):
        workflow.print_all_labels()
    assert fake_api.called("print_medication_label") == []

    verify_all(workflow)
    workflow.print_label(items[0].id)
    assert items[0].label_printed
    assert fake_api.called("print_medication_label")[0][1] == 1001

    labels = workflow.print_all_labels()
    assert len(labels) == 2
    assert all(i.label_printed for i in items)


def test_print_label_failure(workflow, fake_api):
    items = saved_walk_in(workflow)
    verify_all(workflow)
    fake_api.fail["print_medication_label"] = upstream_down("Printer offline", 503)
    with pytest.raises(PharmacyApiError):
        workflow.print_label(items[0].id)
    assert items[0].label_printed is False
